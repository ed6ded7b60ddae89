"""Application settings and environment helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List

from dotenv import load_dotenv

load_dotenv(override=False)


_PROJECT_ROOT = Path(__file__).resolve().parents[2]
_DEFAULT_DATABASE_URL = f"sqlite:///{_PROJECT_ROOT / 'data' / 'app.db'}"

_LOCAL_DEV_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


def _require_env(name: str) -> str:
    """Return a required environment variable or raise an error."""

    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _split_csv(raw: str | None) -> List[str]:
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _unique(values: Iterable[str]) -> List[str]:
    seen = set()
    ordered: List[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for one application instance."""

    jwt_secret: str
    google_client_id: str = ""
    database_url: str = _DEFAULT_DATABASE_URL
    frontend_origins: List[str] = field(default_factory=list)
    allowed_cors_origins: List[str] = field(default_factory=list)
    db_reset: bool = False
    log_level: str = "INFO"

    @property
    def frontend_origin(self) -> str:
        return self.frontend_origins[0] if self.frontend_origins else ""


def load_settings() -> Settings:
    """Build settings from the environment.

    ``JWT_SECRET`` has no fallback: the process refuses to start without it.
    """

    jwt_secret = _require_env("JWT_SECRET")

    # FRONTEND_ORIGIN can contain a comma-separated list for multi-domain deploys.
    frontend_origins = _split_csv(os.getenv("FRONTEND_ORIGIN"))
    additional_origins = _split_csv(os.getenv("ADDITIONAL_ALLOWED_ORIGINS"))

    return Settings(
        jwt_secret=jwt_secret,
        google_client_id=(os.getenv("GOOGLE_CLIENT_ID") or "").strip(),
        database_url=os.getenv("DATABASE_URL") or _DEFAULT_DATABASE_URL,
        frontend_origins=frontend_origins,
        allowed_cors_origins=_unique(
            [
                *frontend_origins,
                *additional_origins,
                *_LOCAL_DEV_ORIGINS,
            ]
        ),
        db_reset=_env_bool("DB_RESET", False),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
    )


__all__ = ["Settings", "load_settings"]
