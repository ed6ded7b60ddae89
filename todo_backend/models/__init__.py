"""Database model exports."""

from .account import Account, default_preferences
from .task import Task

__all__ = [
    "Account",
    "Task",
    "default_preferences",
]
