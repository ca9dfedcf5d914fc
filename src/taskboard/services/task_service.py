"""Task service — task CRUD gated by the assignment relation.

Learn: A user may see or change a task only while a task_users row links
them to it. Every read and write goes through ensure_access(), which
answers "not found" both when the task is missing and when the caller
is not assigned, so task ids cannot be probed.

Writes that touch a task and its assignments happen in one transaction:
the task row is flushed (to get its id), assignment rows are added, and
a single commit makes both visible. Any failure rolls everything back,
so a task can never exist without its assignees.
"""

from datetime import datetime, timezone
from typing import Any, Iterable, Optional

import structlog
from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.db.models import Task, TaskAssignment, User
from taskboard.errors import InvalidInputError, NotFoundError
from taskboard.schemas.task import SORTABLE_FIELDS

logger = structlog.get_logger()

UPDATABLE_FIELDS = ("title", "description", "start_at", "end_at", "location")


class TaskService:
    """Business logic for shared tasks and their assignees."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Authorization ───────────────────────────────────

    async def is_assigned(self, task_id: int, user_id: int) -> bool:
        result = await self.db.execute(
            select(TaskAssignment.id).where(
                TaskAssignment.task_id == task_id,
                TaskAssignment.user_id == user_id,
            )
        )
        return result.first() is not None

    async def ensure_access(self, task_id: int, user_id: int) -> Task:
        """Return the task if user_id is assigned to it, else NotFoundError."""
        task = await self.db.get(Task, task_id)
        if not task or not await self.is_assigned(task_id, user_id):
            raise NotFoundError(f"Cannot find Task with id={task_id} for this user")
        return task

    # ─── Assignment repository ───────────────────────────

    async def list_assignees(self, task_id: int) -> list[int]:
        result = await self.db.execute(
            select(TaskAssignment.user_id)
            .where(TaskAssignment.task_id == task_id)
            .order_by(TaskAssignment.user_id)
        )
        return list(result.scalars().all())

    async def assign(self, task_id: int, user_ids: Iterable[int]) -> list[int]:
        """Link users to a task. Existing links are left as they are.

        Does not commit — callers own the transaction.
        """
        wanted = _unique(user_ids)
        await self._ensure_users_exist(wanted)
        existing = set(await self.list_assignees(task_id))
        added = [uid for uid in wanted if uid not in existing]
        for uid in added:
            self.db.add(TaskAssignment(task_id=task_id, user_id=uid))
        await self.db.flush()
        return added

    async def unassign(self, task_id: int, user_id: int) -> bool:
        """Remove one link. Refuses to remove a task's last assignee.

        Does not commit — callers own the transaction.
        """
        assignees = await self.list_assignees(task_id)
        if user_id not in assignees:
            return False
        if len(assignees) == 1:
            raise InvalidInputError("A task must keep at least one assignee")
        await self.db.execute(
            delete(TaskAssignment).where(
                TaskAssignment.task_id == task_id,
                TaskAssignment.user_id == user_id,
            )
        )
        return True

    async def replace_assignees(self, task_id: int, user_ids: Iterable[int]) -> None:
        wanted = _unique(user_ids)
        if not wanted:
            raise InvalidInputError("A task must keep at least one assignee")
        await self._ensure_users_exist(wanted)
        await self.db.execute(
            delete(TaskAssignment).where(
                TaskAssignment.task_id == task_id,
                TaskAssignment.user_id.not_in(wanted),
            )
        )
        await self.assign(task_id, wanted)

    async def _ensure_users_exist(self, user_ids: list[int]) -> None:
        if not user_ids:
            return
        result = await self.db.execute(select(User.id).where(User.id.in_(user_ids)))
        missing = set(user_ids) - set(result.scalars().all())
        if missing:
            raise InvalidInputError(
                f"Unknown user id(s): {', '.join(str(m) for m in sorted(missing))}"
            )

    # ─── Create ──────────────────────────────────────────

    async def create_task(
        self,
        creator_id: int,
        title: str,
        start_at: datetime,
        end_at: datetime,
        description: Optional[str] = None,
        location: Optional[str] = None,
        assignee_ids: Optional[list[int]] = None,
    ) -> Task:
        """Create a task and its assignments atomically.

        Learn: With no explicit list the creator is the only assignee.
        An explicit list is taken as given — if the creator leaves
        themselves out, they will not see the task.
        """
        if assignee_ids is not None and not assignee_ids:
            raise InvalidInputError("assignee_ids must not be empty")
        assignees = assignee_ids if assignee_ids is not None else [creator_id]

        try:
            task = Task(
                title=title,
                description=description,
                start_at=start_at,
                end_at=end_at,
                location=location,
                created_by=creator_id,
            )
            self.db.add(task)
            await self.db.flush()  # get auto-generated ID
            await self.assign(task.id, assignees)
            await self.db.commit()
            await self.db.refresh(task)
        except Exception:
            await self.db.rollback()
            raise

        logger.info("task.created", task_id=task.id, user_id=creator_id)
        return task

    # ─── Read ────────────────────────────────────────────

    async def get_task(self, task_id: int, user_id: int) -> Task:
        return await self.ensure_access(task_id, user_id)

    async def list_tasks(
        self,
        user_id: int,
        page: int = 0,
        size: int = 10,
        sort_by: str = "start_at",
        sort_order: str = "asc",
        query: Optional[str] = None,
    ) -> tuple[list[Task], int]:
        """List the tasks assigned to user_id, one page at a time.

        Learn: Filters are applied conditionally — the search term only
        when the caller provides one. Returns (items, total_count).
        """
        if sort_by not in SORTABLE_FIELDS:
            raise InvalidInputError(
                f"sort_by must be one of: {', '.join(SORTABLE_FIELDS)}"
            )

        assigned = select(TaskAssignment.task_id).where(
            TaskAssignment.user_id == user_id
        )
        base = select(Task).where(Task.id.in_(assigned))
        if query:
            pattern = f"%{query.lower()}%"
            base = base.where(
                or_(
                    func.lower(Task.title).like(pattern),
                    func.lower(func.coalesce(Task.description, "")).like(pattern),
                )
            )

        total = await self.db.scalar(
            select(func.count()).select_from(base.subquery())
        )

        column = getattr(Task, sort_by)
        ordering = column.desc() if sort_order == "desc" else column.asc()
        result = await self.db.execute(
            base.order_by(ordering, Task.id.asc()).limit(size).offset(page * size)
        )
        return list(result.scalars().all()), total or 0

    # ─── Update ──────────────────────────────────────────

    async def update_task(
        self,
        task_id: int,
        user_id: int,
        changes: dict[str, Any],
        assignee_ids: Optional[list[int]] = None,
    ) -> Task:
        """Apply a partial update; optionally replace the assignee list.

        Every key in changes is written, so None clears an optional column.
        """
        task = await self.ensure_access(task_id, user_id)

        try:
            for field in UPDATABLE_FIELDS:
                if field in changes:
                    setattr(task, field, changes[field])
            if _as_naive(task.end_at) < _as_naive(task.start_at):
                raise InvalidInputError("end_at must not be before start_at")
            if assignee_ids is not None:
                await self.replace_assignees(task_id, assignee_ids)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        await self.db.refresh(task)
        logger.info("task.updated", task_id=task_id, user_id=user_id)
        return task

    # ─── Delete ──────────────────────────────────────────

    async def delete_task(self, task_id: int, user_id: int) -> None:
        """Delete the task and every assignment pointing at it."""
        task = await self.ensure_access(task_id, user_id)
        try:
            await self.db.execute(
                delete(TaskAssignment).where(TaskAssignment.task_id == task_id)
            )
            await self.db.delete(task)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info("task.deleted", task_id=task_id, user_id=user_id)

    # ─── Assignment endpoints ────────────────────────────

    async def add_assignees(
        self, task_id: int, user_id: int, user_ids: list[int]
    ) -> list[int]:
        await self.ensure_access(task_id, user_id)
        try:
            added = await self.assign(task_id, user_ids)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info("task.assigned", task_id=task_id, user_id=user_id, added=added)
        return await self.list_assignees(task_id)

    async def remove_assignee(
        self, task_id: int, user_id: int, target_user_id: int
    ) -> list[int]:
        await self.ensure_access(task_id, user_id)
        try:
            removed = await self.unassign(task_id, target_user_id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        if not removed:
            raise NotFoundError(
                f"User {target_user_id} is not assigned to task {task_id}"
            )
        logger.info(
            "task.unassigned", task_id=task_id, user_id=user_id, removed=target_user_id
        )
        return await self.list_assignees(task_id)

    # ─── Serialization ───────────────────────────────────

    async def to_read(self, task: Task) -> dict:
        """Task columns plus its assignee ids, ready for TaskRead."""
        return {
            "id": task.id,
            "title": task.title,
            "description": task.description,
            "start_at": task.start_at,
            "end_at": task.end_at,
            "location": task.location,
            "created_by": task.created_by,
            "assignee_ids": await self.list_assignees(task.id),
            "created_at": task.created_at,
            "updated_at": task.updated_at,
        }


def _unique(user_ids: Iterable[int]) -> list[int]:
    seen: list[int] = []
    for uid in user_ids:
        if uid not in seen:
            seen.append(uid)
    return seen


def _as_naive(value: datetime) -> datetime:
    """Compare datetimes regardless of whether the driver kept tzinfo."""
    if value.tzinfo:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
