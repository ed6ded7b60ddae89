"""Identity authentication and profile routes."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session

from ...core import get_session
from ...errors import AccountAlreadyExists, AccountNotFound, InvalidAssertion
from ...schemas import IdentityRequest, PreferencesPatch, ProfileSetup
from ...services.accounts import account_to_dict, setup_profile, update_preferences
from ...services.identity import IdentityVerifier, resolve_identity
from ...services.tokens import SessionTokens
from ..guard import CallerContext, optional_caller, require_caller

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def get_identity_verifier(request: Request) -> IdentityVerifier:
    return request.app.state.identity_verifier


def get_tokens(request: Request) -> SessionTokens:
    return request.app.state.tokens


@router.post("/identity")
async def authenticate_identity(
    body: IdentityRequest,
    session: Session = Depends(get_session),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
    tokens: SessionTokens = Depends(get_tokens),
) -> Dict[str, Any]:
    """Exchange a verified identity assertion for a bearer token."""

    try:
        assertion = await verifier.verify(body.assertion)
    except InvalidAssertion as exc:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, str(exc)) from exc

    try:
        account = await run_in_threadpool(
            resolve_identity, session, assertion, body.intent
        )
    except AccountNotFound as exc:
        raise HTTPException(
            status.HTTP_404_NOT_FOUND, {"message": str(exc), "action": "signup"}
        ) from exc
    except AccountAlreadyExists as exc:
        raise HTTPException(
            status.HTTP_409_CONFLICT, {"message": str(exc), "action": "signin"}
        ) from exc

    logger.info("Issued session token for account %s", account.id)
    return {
        "token": tokens.issue(account),
        "isNewUser": account.is_new_user,
        "account": account_to_dict(account),
    }


@router.get("/me")
def me(caller: CallerContext = Depends(require_caller)) -> Dict[str, Any]:
    return account_to_dict(caller.account)


@router.get("/session")
def current_session(
    caller: Optional[CallerContext] = Depends(optional_caller),
) -> Dict[str, Any]:
    """Report the caller's account, or ``None`` for anonymous callers."""

    if caller is None:
        return {"user": None}
    return {"user": account_to_dict(caller.account)}


@router.post("/profile")
def save_profile(
    body: ProfileSetup,
    caller: CallerContext = Depends(require_caller),
    session: Session = Depends(get_session),
) -> Dict[str, Any]:
    """Complete onboarding for the caller."""

    account = setup_profile(session, caller.account_id, body)
    if account is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User not found")
    return account_to_dict(account)


@router.patch("/preferences")
def patch_preferences(
    body: PreferencesPatch,
    caller: CallerContext = Depends(require_caller),
    session: Session = Depends(get_session),
) -> Dict[str, Any]:
    account = update_preferences(session, caller.account_id, body)
    if account is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User not found")
    return account_to_dict(account)


__all__ = ["router"]
