"""Identity provider verification and account resolution."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import httpx
from authlib.common.encoding import to_bytes
from authlib.jose import JsonWebKey, JsonWebToken
from authlib.jose.errors import DecodeError, JoseError
from authlib.jose.util import extract_header
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..errors import AccountAlreadyExists, AccountNotFound, InvalidAssertion
from ..models import Account
from ..schemas import Intent

logger = logging.getLogger(__name__)

GOOGLE_CERTS_URL = "https://www.googleapis.com/oauth2/v3/certs"
GOOGLE_ISSUERS = ["accounts.google.com", "https://accounts.google.com"]


@dataclass(frozen=True)
class IdentityAssertion:
    """A verified identity handed over by the identity provider."""

    subject: str
    email: str
    name: str
    picture: Optional[str] = None
    provider: str = "google"


class IdentityVerifier(Protocol):
    async def verify(self, credential: str) -> IdentityAssertion:
        ...


def _assertion_from_claims(claims: Dict[str, Any], provider: str) -> IdentityAssertion:
    subject = str(claims.get("sub") or "").strip()
    email = str(claims.get("email") or "").strip().lower()
    if not subject or not email:
        raise InvalidAssertion("Identity assertion is missing subject or email")
    if claims.get("email_verified") is False:
        raise InvalidAssertion("Identity provider has not verified this email")
    name = str(claims.get("name") or "").strip() or email.split("@")[0]
    return IdentityAssertion(
        subject=subject,
        email=email,
        name=name,
        picture=claims.get("picture") or None,
        provider=provider,
    )


def _token_kid(credential: str) -> Optional[str]:
    try:
        header = extract_header(to_bytes(credential.split(".")[0]), DecodeError)
    except (JoseError, ValueError) as exc:
        logger.info("Rejected Google ID token: %s", exc)
        raise InvalidAssertion("Invalid identity assertion") from exc
    return header.get("kid")


class GoogleIdentityVerifier:
    """Verifies Google ID tokens against Google's published signing keys.

    Keys are cached for ``cache_seconds``. A token signed with a key id that
    is not in the cache triggers one early refetch, at most once every
    ``min_refresh_seconds``.
    """

    def __init__(
        self,
        client_id: str,
        *,
        certs_url: str = GOOGLE_CERTS_URL,
        jwks: Optional[Dict[str, Any]] = None,
        cache_seconds: int = 3600,
        min_refresh_seconds: int = 60,
        leeway: int = 60,
    ) -> None:
        if not client_id:
            raise RuntimeError("Missing required environment variable: GOOGLE_CLIENT_ID")
        self.client_id = client_id
        self.certs_url = certs_url
        self.cache_seconds = cache_seconds
        self.min_refresh_seconds = min_refresh_seconds
        self.leeway = leeway
        self._jwt = JsonWebToken(["RS256"])
        self._keys = JsonWebKey.import_key_set(jwks) if jwks else None
        self._keys_loaded_at = time.monotonic() if jwks else 0.0
        self._static_keys = jwks is not None

    async def _fetch_jwks(self) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=10) as client:
            response = await client.get(self.certs_url)
            response.raise_for_status()
            return response.json()

    async def _load_keys(self, *, refresh: bool = False):
        if self._static_keys:
            return self._keys
        age = time.monotonic() - self._keys_loaded_at
        stale = self._keys is None or age > self.cache_seconds
        if stale or (refresh and age >= self.min_refresh_seconds):
            self._keys = JsonWebKey.import_key_set(await self._fetch_jwks())
            self._keys_loaded_at = time.monotonic()
        return self._keys

    async def verify(self, credential: str) -> IdentityAssertion:
        if not credential:
            raise InvalidAssertion("No credential provided")

        kid = _token_kid(credential)
        keys = await self._load_keys()
        if kid and kid not in {key.kid for key in keys.keys}:
            logger.info("Unknown Google signing key %s, refreshing certs", kid)
            keys = await self._load_keys(refresh=True)
        claims_options = {
            "iss": {"essential": True, "values": GOOGLE_ISSUERS},
            "aud": {"essential": True, "value": self.client_id},
            "sub": {"essential": True},
            "exp": {"essential": True},
        }
        try:
            claims = self._jwt.decode(credential, keys, claims_options=claims_options)
            claims.validate(leeway=self.leeway)
        except (JoseError, ValueError) as exc:
            logger.info("Rejected Google ID token: %s", exc)
            raise InvalidAssertion("Invalid identity assertion") from exc
        return _assertion_from_claims(dict(claims), provider="google")


def find_account_by_subject(session: Session, subject: str) -> Optional[Account]:
    return session.exec(select(Account).where(Account.provider_sub == subject)).first()


def resolve_identity(
    session: Session, assertion: IdentityAssertion, intent: Intent
) -> Account:
    """Find or create the account for ``assertion``.

    Sign-in never creates an account and sign-up never returns an existing
    one. Duplicate subjects or emails are caught by the unique constraints,
    so two racing sign-ups leave exactly one row behind.
    """

    account = find_account_by_subject(session, assertion.subject)

    if intent is Intent.SIGNIN:
        if account is None:
            logger.info("Sign-in for unknown subject %s", assertion.subject)
            raise AccountNotFound("No account exists for this identity. Please sign up.")
        return account

    if account is not None:
        logger.info("Sign-up for existing account %s", account.id)
        raise AccountAlreadyExists("An account already exists. Please sign in.")

    account = Account(
        provider=assertion.provider,
        provider_sub=assertion.subject,
        email=assertion.email,
        name=assertion.name,
        picture=assertion.picture,
        is_new_user=True,
    )
    session.add(account)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        logger.info("Sign-up for %s lost to an existing row", assertion.subject)
        raise AccountAlreadyExists("An account already exists. Please sign in.") from exc
    session.refresh(account)
    logger.info("Created account %s", account.id)
    return account


__all__ = [
    "GoogleIdentityVerifier",
    "IdentityAssertion",
    "IdentityVerifier",
    "find_account_by_subject",
    "resolve_identity",
]
