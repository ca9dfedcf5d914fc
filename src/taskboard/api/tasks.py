"""Task and assignment API routes.

Learn: Routes translate HTTP to TaskService calls. The service decides
access (assignment check) and raises AppErrors that the app-level
handlers render, so handlers stay thin.

The acting user always comes from the access token (CurrentIdentity),
never from the request body. The /tasks/user/{user_id}/... variants
additionally require the path user to be the caller (403 otherwise).
"""

import math
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.auth.dependencies import (
    CurrentIdentity,
    get_current_user,
    require_path_user,
)
from taskboard.db.engine import get_db
from taskboard.schemas.task import (
    AssigneesChange,
    AssigneesRead,
    TaskCreate,
    TaskPage,
    TaskRead,
    TaskUpdate,
)
from taskboard.services.task_service import TaskService

router = APIRouter(prefix="/tasks")


def _task_svc(db: AsyncSession = Depends(get_db)) -> TaskService:
    return TaskService(db)


async def _page(
    svc: TaskService,
    user_id: int,
    page: int,
    size: int,
    sort_by: str,
    sort_order: str,
    q: Optional[str],
) -> dict:
    items, total = await svc.list_tasks(
        user_id=user_id,
        page=page,
        size=size,
        sort_by=sort_by,
        sort_order=sort_order,
        query=q,
    )
    return {
        "items": [await svc.to_read(t) for t in items],
        "pagination": {
            "page": page,
            "size": size,
            "total_items": total,
            "total_pages": math.ceil(total / size) if total else 0,
        },
        "sort": {"sort_by": sort_by, "sort_order": sort_order},
    }


async def _update(
    svc: TaskService, task_id: int, user_id: int, body: TaskUpdate
) -> dict:
    task = await svc.update_task(
        task_id=task_id,
        user_id=user_id,
        changes=body.model_dump(exclude={"assignee_ids"}, exclude_unset=True),
        assignee_ids=body.assignee_ids,
    )
    return await svc.to_read(task)


# ═══════════════════════════════════════════════════════════
# Tasks (caller taken from the token)
# ═══════════════════════════════════════════════════════════


@router.post("", response_model=TaskRead, status_code=201)
async def create_task(
    body: TaskCreate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    """Create a task. Without assignee_ids, only the creator is assigned."""
    task = await svc.create_task(
        creator_id=identity.user_id,
        title=body.title,
        description=body.description,
        start_at=body.start_at,
        end_at=body.end_at,
        location=body.location,
        assignee_ids=body.assignee_ids,
    )
    return await svc.to_read(task)


@router.get("", response_model=TaskPage)
async def list_tasks(
    page: int = Query(0, ge=0),
    size: int = Query(10, ge=1, le=100),
    sort_by: str = Query("start_at"),
    sort_order: Literal["asc", "desc"] = Query("asc"),
    q: Optional[str] = Query(None, description="Search title and description"),
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    """List tasks assigned to the caller."""
    return await _page(svc, identity.user_id, page, size, sort_by, sort_order, q)


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    task = await svc.get_task(task_id, identity.user_id)
    return await svc.to_read(task)


@router.put("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: int,
    body: TaskUpdate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    """Partially update a task; assignee_ids, if given, replaces the list."""
    return await _update(svc, task_id, identity.user_id, body)


@router.delete("/{task_id}")
async def delete_task(
    task_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    await svc.delete_task(task_id, identity.user_id)
    return {"deleted": True}


# ═══════════════════════════════════════════════════════════
# Assignments
# ═══════════════════════════════════════════════════════════


@router.get("/{task_id}/assignees", response_model=AssigneesRead)
async def list_assignees(
    task_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    await svc.ensure_access(task_id, identity.user_id)
    return {"task_id": task_id, "user_ids": await svc.list_assignees(task_id)}


@router.post("/{task_id}/assignees", response_model=AssigneesRead)
async def add_assignees(
    task_id: int,
    body: AssigneesChange,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    """Share a task with more users. Already-assigned users are ignored."""
    user_ids = await svc.add_assignees(task_id, identity.user_id, body.user_ids)
    return {"task_id": task_id, "user_ids": user_ids}


@router.delete("/{task_id}/assignees/{user_id}", response_model=AssigneesRead)
async def remove_assignee(
    task_id: int,
    user_id: int,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    """Unshare a task. The last remaining assignee cannot be removed."""
    user_ids = await svc.remove_assignee(task_id, identity.user_id, user_id)
    return {"task_id": task_id, "user_ids": user_ids}


# ═══════════════════════════════════════════════════════════
# Path-scoped variants (/tasks/user/{user_id}/...)
# ═══════════════════════════════════════════════════════════


@router.get("/user/{user_id}", response_model=TaskPage)
async def list_user_tasks(
    user_id: int,
    page: int = Query(0, ge=0),
    size: int = Query(10, ge=1, le=100),
    sort_by: str = Query("start_at"),
    sort_order: Literal["asc", "desc"] = Query("asc"),
    q: Optional[str] = Query(None),
    identity: CurrentIdentity = Depends(require_path_user),
    svc: TaskService = Depends(_task_svc),
):
    return await _page(svc, identity.user_id, page, size, sort_by, sort_order, q)


@router.get("/user/{user_id}/task/{task_id}", response_model=TaskRead)
async def get_user_task(
    user_id: int,
    task_id: int,
    identity: CurrentIdentity = Depends(require_path_user),
    svc: TaskService = Depends(_task_svc),
):
    task = await svc.get_task(task_id, identity.user_id)
    return await svc.to_read(task)


@router.put("/user/{user_id}/task/{task_id}", response_model=TaskRead)
async def update_user_task(
    user_id: int,
    task_id: int,
    body: TaskUpdate,
    identity: CurrentIdentity = Depends(require_path_user),
    svc: TaskService = Depends(_task_svc),
):
    return await _update(svc, task_id, identity.user_id, body)


@router.delete("/user/{user_id}/task/{task_id}")
async def delete_user_task(
    user_id: int,
    task_id: int,
    identity: CurrentIdentity = Depends(require_path_user),
    svc: TaskService = Depends(_task_svc),
):
    await svc.delete_task(task_id, identity.user_id)
    return {"deleted": True}
