"""Bearer token issuing and verification."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

from authlib.jose import JsonWebToken
from authlib.jose.errors import JoseError

from ..errors import InvalidCredential
from ..models import Account

logger = logging.getLogger(__name__)

TOKEN_TTL_SECONDS = 7 * 24 * 60 * 60

_CLAIMS_OPTIONS = {
    "sub": {"essential": True},
    "iat": {"essential": True},
    "exp": {"essential": True},
}


@dataclass(frozen=True)
class AccountClaims:
    """Decoded contents of a verified bearer token."""

    account_id: uuid.UUID
    email: str
    name: str
    issued_at: int
    expires_at: int


class SessionTokens:
    """Issues and verifies HS256-signed bearer tokens.

    Tokens carry only the account id, email and name. The provider subject id
    and profile attributes stay server-side.
    """

    algorithm = "HS256"

    def __init__(
        self,
        secret: str,
        *,
        ttl_seconds: int = TOKEN_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise RuntimeError("A signing secret is required to issue tokens")
        self._secret = secret
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._jwt = JsonWebToken([self.algorithm])

    def _now(self, now: Optional[float]) -> int:
        return int(self._clock() if now is None else now)

    def issue(self, account: Account, *, now: Optional[float] = None) -> str:
        issued_at = self._now(now)
        payload = {
            "sub": str(account.id),
            "email": account.email,
            "name": account.name,
            "iat": issued_at,
            "exp": issued_at + self._ttl_seconds,
        }
        header = {"alg": self.algorithm, "typ": "JWT"}
        return self._jwt.encode(header, payload, self._secret).decode("ascii")

    def verify(self, token: Optional[str], *, now: Optional[float] = None) -> AccountClaims:
        """Return the token's claims or raise :class:`InvalidCredential`.

        Every failure (empty, malformed, bad signature, expired) raises the
        same exception; the reason is only logged.
        """

        if not token:
            raise InvalidCredential("Invalid or expired credential")
        try:
            claims = self._jwt.decode(token, self._secret, claims_options=_CLAIMS_OPTIONS)
            claims.validate(now=self._now(now), leeway=0)
            return AccountClaims(
                account_id=uuid.UUID(str(claims["sub"])),
                email=str(claims.get("email") or ""),
                name=str(claims.get("name") or ""),
                issued_at=int(claims["iat"]),
                expires_at=int(claims["exp"]),
            )
        except (JoseError, ValueError, TypeError, KeyError) as exc:
            logger.info("Rejected bearer token: %s", exc.__class__.__name__)
            raise InvalidCredential("Invalid or expired credential") from exc


__all__ = ["AccountClaims", "SessionTokens", "TOKEN_TTL_SECONDS"]
