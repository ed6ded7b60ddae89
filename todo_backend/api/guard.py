"""Request authentication.

The guard is the only place that turns a bearer token into a caller. Route
handlers receive a :class:`CallerContext` through ``Depends(require_caller)``
and never look at the ``Authorization`` header themselves.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from ..core import get_session
from ..errors import AuthenticationError, AuthenticationRequired, InvalidCredential
from ..models import Account
from ..services.tokens import AccountClaims, SessionTokens

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CallerContext:
    """The authenticated account behind the current request."""

    account: Account
    claims: AccountClaims

    @property
    def account_id(self) -> uuid.UUID:
        return self.claims.account_id


class AccessGuard:
    def __init__(self, tokens: SessionTokens) -> None:
        self.tokens = tokens

    def authenticate(self, session: Session, token: Optional[str]) -> CallerContext:
        if not token:
            raise AuthenticationRequired("Not authenticated")
        claims = self.tokens.verify(token)
        account = session.get(Account, claims.account_id)
        if account is None:
            logger.info("Token for missing account %s", claims.account_id)
            raise InvalidCredential("Invalid or expired credential")
        return CallerContext(account=account, claims=claims)


def get_guard(request: Request) -> AccessGuard:
    return request.app.state.guard


def require_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    guard: AccessGuard = Depends(get_guard),
    session: Session = Depends(get_session),
) -> CallerContext:
    token = credentials.credentials if credentials else None
    try:
        return guard.authenticate(session, token)
    except AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


def optional_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    guard: AccessGuard = Depends(get_guard),
    session: Session = Depends(get_session),
) -> Optional[CallerContext]:
    """Like :func:`require_caller` but anonymous callers get ``None``."""

    if credentials is None:
        return None
    try:
        return guard.authenticate(session, credentials.credentials)
    except AuthenticationError:
        return None


__all__ = [
    "AccessGuard",
    "CallerContext",
    "get_guard",
    "optional_caller",
    "require_caller",
]
