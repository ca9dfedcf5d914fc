"""Pydantic schemas for tasks and assignments.

Learn: Separate schemas for create/update/read keeps the API clean.
- TaskCreate: what you POST to create a task
- TaskUpdate: what you PUT to modify a task (all optional)
- TaskRead: what the API returns (includes the assignee ids)
- TaskPage: a page of tasks plus pagination and sort metadata
"""

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

SORTABLE_FIELDS = ("start_at", "end_at", "title", "created_at", "updated_at", "id")

REQUIRED_ON_UPDATE = ("title", "start_at", "end_at")


def _to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Pin a timestamp to UTC; values without an offset are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    start_at: datetime
    end_at: datetime
    location: Optional[str] = Field(None, max_length=255)
    assignee_ids: Optional[list[int]] = Field(
        None, description="Users to share with. Defaults to just the creator."
    )

    @field_validator("start_at", "end_at")
    @classmethod
    def normalize_time(cls, v: datetime) -> datetime:
        return _to_utc(v)

    @model_validator(mode="after")
    def check_time_range(self):
        if self.end_at < self.start_at:
            raise ValueError("end_at must not be before start_at")
        return self


class TaskUpdate(BaseModel):
    """Partial update — only the fields sent are applied.

    description and location may be cleared with null; title and the
    time range may not.
    """
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=255)
    assignee_ids: Optional[list[int]] = Field(
        None, min_length=1, description="Replaces the whole assignee list"
    )

    @field_validator("start_at", "end_at")
    @classmethod
    def normalize_time(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _to_utc(v)

    @model_validator(mode="after")
    def check_time_range(self):
        for name in REQUIRED_ON_UPDATE:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        if self.start_at and self.end_at and self.end_at < self.start_at:
            raise ValueError("end_at must not be before start_at")
        return self


class TaskRead(BaseModel):
    id: int
    title: str
    description: Optional[str]
    start_at: datetime
    end_at: datetime
    location: Optional[str]
    created_by: Optional[int]
    assignee_ids: list[int] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class Pagination(BaseModel):
    page: int
    size: int
    total_items: int
    total_pages: int


class SortInfo(BaseModel):
    sort_by: str
    sort_order: Literal["asc", "desc"]


class TaskPage(BaseModel):
    items: list[TaskRead]
    pagination: Pagination
    sort: SortInfo


class AssigneesChange(BaseModel):
    user_ids: list[int] = Field(..., min_length=1)


class AssigneesRead(BaseModel):
    task_id: int
    user_ids: list[int]
