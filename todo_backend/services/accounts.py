"""Account profile helpers."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from sqlalchemy import update
from sqlmodel import Session

from ..core.time import isoformat_utc, utcnow
from ..models import Account
from ..schemas import PreferencesPatch, ProfileSetup

logger = logging.getLogger(__name__)


def account_to_dict(account: Account) -> Dict[str, Any]:
    """Serialise an account to the API profile shape."""

    return {
        "id": str(account.id),
        "email": account.email,
        "name": account.name,
        "displayName": account.display_name,
        "picture": account.picture,
        "bio": account.bio,
        "timezone": account.timezone,
        "language": account.language,
        "preferences": account.preferences,
        "isNewUser": account.is_new_user,
        "createdAt": isoformat_utc(account.created_at),
        "updatedAt": isoformat_utc(account.updated_at),
    }


def setup_profile(
    session: Session, account_id: uuid.UUID, data: ProfileSetup
) -> Optional[Account]:
    """Store onboarding profile data and clear the new-user flag."""

    result = session.execute(
        update(Account)
        .where(Account.id == account_id)
        .values(
            display_name=data.display_name,
            bio=data.bio,
            timezone=data.timezone,
            language=data.language,
            preferences=data.preferences.model_dump(by_alias=True),
            is_new_user=False,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        session.rollback()
        return None
    session.commit()
    logger.info("Completed profile setup for account %s", account_id)
    return session.get(Account, account_id)


def update_preferences(
    session: Session, account_id: uuid.UUID, patch: PreferencesPatch
) -> Optional[Account]:
    account = session.get(Account, account_id)
    if account is None:
        return None
    account.preferences = patch.merge_into(account.preferences or {})
    account.updated_at = utcnow()
    session.add(account)
    session.commit()
    session.refresh(account)
    return account


__all__ = ["account_to_dict", "setup_profile", "update_preferences"]
