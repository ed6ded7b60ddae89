"""Domain exceptions raised by the service layer.

Routes translate these into HTTP responses. Ownership mismatches are never
represented here: the task store reports them as plain absence.
"""

from __future__ import annotations


class TodoError(Exception):
    """Base class for expected, client-caused failures."""


class InvalidInput(TodoError):
    """Request data failed validation."""


class AuthenticationError(TodoError):
    """Caller identity could not be established."""


class AuthenticationRequired(AuthenticationError):
    """No bearer token was presented."""


class InvalidCredential(AuthenticationError):
    """Bearer token is malformed, tampered, expired or names no account."""


class InvalidAssertion(TodoError):
    """Identity provider assertion failed verification."""


class AccountNotFound(TodoError):
    """Sign-in for an identity that has no account yet."""


class AccountAlreadyExists(TodoError):
    """Sign-up for an identity (or email) that already has an account."""


__all__ = [
    "AccountAlreadyExists",
    "AccountNotFound",
    "AuthenticationError",
    "AuthenticationRequired",
    "InvalidAssertion",
    "InvalidCredential",
    "InvalidInput",
    "TodoError",
]
