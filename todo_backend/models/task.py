"""Database model for tasks."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Index
from sqlmodel import Field, SQLModel

from ..core.time import utcnow


class Task(SQLModel, table=True):
    """To-do item owned by exactly one account."""

    __table_args__ = (
        Index("ix_task_user_completed", "user_id", "completed"),
        Index("ix_task_user_due_date", "user_id", "due_date"),
        Index("ix_task_user_category", "user_id", "category"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, nullable=False)
    user_id: uuid.UUID = Field(foreign_key="account.id", index=True, nullable=False)
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    due_date: Optional[datetime] = None
    completed: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


__all__ = ["Task"]
