"""Service layer helpers."""

from .accounts import account_to_dict, setup_profile, update_preferences
from .identity import (
    GoogleIdentityVerifier,
    IdentityAssertion,
    IdentityVerifier,
    resolve_identity,
)
from .tasks import TaskPage, TaskQuery, TaskStats, TaskStore, stats_to_dict, task_to_dict
from .tokens import AccountClaims, SessionTokens

__all__ = [
    "AccountClaims",
    "GoogleIdentityVerifier",
    "IdentityAssertion",
    "IdentityVerifier",
    "SessionTokens",
    "TaskPage",
    "TaskQuery",
    "TaskStats",
    "TaskStore",
    "account_to_dict",
    "resolve_identity",
    "setup_profile",
    "stats_to_dict",
    "task_to_dict",
    "update_preferences",
]
