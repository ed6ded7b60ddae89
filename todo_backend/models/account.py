"""Database model for accounts authenticated through an identity provider."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from ..core.time import utcnow

DEFAULT_CATEGORIES = ["Work", "Personal", "Shopping", "Health"]


def default_preferences() -> Dict[str, Any]:
    return {
        "theme": "auto",
        "notifications": {"email": True, "push": True, "taskReminders": True},
        "defaultCategories": list(DEFAULT_CATEGORIES),
        "reminderFrequency": "daily",
    }


class Account(SQLModel, table=True):
    """Registered user keyed by the identity provider's subject id."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, nullable=False)
    provider: str = Field(default="google")
    provider_sub: str = Field(index=True, unique=True)
    email: str = Field(index=True, unique=True)
    name: str
    display_name: Optional[str] = None
    picture: Optional[str] = Field(default=None, max_length=512)
    bio: Optional[str] = Field(default=None, max_length=500)
    timezone: str = Field(default="UTC")
    language: str = Field(default="en")
    preferences: Dict[str, Any] = Field(
        default_factory=default_preferences,
        sa_column=Column(JSON, nullable=False),
    )
    is_new_user: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


__all__ = ["Account", "DEFAULT_CATEGORIES", "default_preferences"]
