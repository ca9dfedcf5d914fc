"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. Constraints and indexes defined here.

Key concepts:
- Users own their credentials, including the single active refresh token
- Tasks are shared; who may see or change them is the task_users join table
- No relationship() helpers for assignments — the task service queries the
  join table explicitly, inside the caller's transaction
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from taskboard.auth.password import hash_password, is_hashed


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """A registered user.

    Learn: The plaintext password is never stored. Assigning to the
    `password` attribute hashes immediately into password_hash, so every
    code path that sets or changes a password gets hashing for free,
    while unrelated updates leave the hash alone.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    refresh_token: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True, index=True
    )  # single active session; NULL after logout
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=utcnow
    )

    @property
    def password(self) -> str:
        raise AttributeError("password is write-only; use password_hash")

    @password.setter
    def password(self, plaintext: str) -> None:
        if plaintext == self.password_hash and is_hashed(plaintext):
            return
        self.password_hash = hash_password(plaintext)

    def to_profile(self) -> dict:
        """Public view of the user — never includes credentials."""
        return {"id": self.id, "username": self.username, "email": self.email}


class Task(Base):
    """A time-boxed unit of work shared between assigned users.

    Learn: created_by is informational only. Access is decided purely
    by TaskAssignment rows, so a creator who unassigns themselves loses
    access like anyone else.
    """

    __tablename__ = "tasks"
    __table_args__ = (Index("idx_tasks_start_at", "start_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_by: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=utcnow
    )


class TaskAssignment(Base):
    """Task ↔ user join row — "this user may view and modify this task".

    Learn: The (task_id, user_id) pair is unique, and rows disappear with
    their task (ON DELETE CASCADE, plus an explicit delete in the service).
    """

    __tablename__ = "task_users"
    __table_args__ = (
        UniqueConstraint("task_id", "user_id", name="uq_task_users_task_user"),
        Index("idx_task_users_user", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
