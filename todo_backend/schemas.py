"""Request payload schemas."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .models.account import DEFAULT_CATEGORIES


def _strip_or_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Intent(str, Enum):
    SIGNIN = "signin"
    SIGNUP = "signup"


class IdentityRequest(_CamelModel):
    assertion: str = Field(
        min_length=1, validation_alias=AliasChoices("assertion", "credential")
    )
    intent: Intent = Intent.SIGNIN


class TaskCreate(_CamelModel):
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    due_date: Optional[datetime] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Title is required")
        return value

    @field_validator("description", "category")
    @classmethod
    def _strip_optional(cls, value: Optional[str]) -> Optional[str]:
        return _strip_or_none(value)

    @field_validator("due_date")
    @classmethod
    def _due_date_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)


class TaskPatch(_CamelModel):
    """Partial task update.

    A field is part of the patch only if the client sent it, so an absent
    field and an explicit ``null`` are different things.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    due_date: Optional[datetime] = None
    completed: Optional[bool] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("Title cannot be empty")
        return value

    @field_validator("description", "category")
    @classmethod
    def _strip_optional(cls, value: Optional[str]) -> Optional[str]:
        return _strip_or_none(value)

    @field_validator("due_date")
    @classmethod
    def _due_date_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    @model_validator(mode="after")
    def _required_fields_not_null(self) -> "TaskPatch":
        for name in ("title", "completed"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> Dict[str, Any]:
        """Column values for the fields present in the patch."""

        return self.model_dump(include=self.model_fields_set)


Theme = Literal["light", "dark", "auto"]
ReminderFrequency = Literal["daily", "weekly", "monthly"]


class Notifications(_CamelModel):
    email: bool = True
    push: bool = True
    task_reminders: bool = True


class Preferences(_CamelModel):
    theme: Theme = "auto"
    notifications: Notifications = Field(default_factory=Notifications)
    default_categories: List[str] = Field(
        default_factory=lambda: list(DEFAULT_CATEGORIES)
    )
    reminder_frequency: ReminderFrequency = "daily"

    @field_validator("default_categories")
    @classmethod
    def _clean_categories(cls, value: List[str]) -> List[str]:
        cleaned: List[str] = []
        for item in value:
            item = item.strip()
            if item and item not in cleaned:
                cleaned.append(item)
        return cleaned


class NotificationsPatch(_CamelModel):
    email: Optional[bool] = None
    push: Optional[bool] = None
    task_reminders: Optional[bool] = None


class PreferencesPatch(_CamelModel):
    theme: Optional[Theme] = None
    notifications: Optional[NotificationsPatch] = None
    default_categories: Optional[List[str]] = None
    reminder_frequency: Optional[ReminderFrequency] = None

    def merge_into(self, current: Dict[str, Any]) -> Dict[str, Any]:
        """Apply the set fields onto stored preferences and revalidate."""

        merged = dict(current)
        changes = self.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
        notifications = changes.pop("notifications", None)
        merged.update(changes)
        if notifications:
            merged["notifications"] = {
                **(current.get("notifications") or {}),
                **notifications,
            }
        return Preferences.model_validate(merged).model_dump(by_alias=True)


class ProfileSetup(_CamelModel):
    display_name: str = Field(min_length=1, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=500)
    timezone: str = Field(default="UTC", min_length=1, max_length=64)
    language: str = Field(default="en", min_length=2, max_length=16)
    preferences: Preferences = Field(default_factory=Preferences)

    @field_validator("display_name")
    @classmethod
    def _display_name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Display name is required")
        return value

    @field_validator("bio")
    @classmethod
    def _strip_bio(cls, value: Optional[str]) -> Optional[str]:
        return _strip_or_none(value)


__all__ = [
    "IdentityRequest",
    "Intent",
    "Notifications",
    "NotificationsPatch",
    "Preferences",
    "PreferencesPatch",
    "ProfileSetup",
    "TaskCreate",
    "TaskPatch",
]
