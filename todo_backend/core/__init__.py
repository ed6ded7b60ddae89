"""Core configuration and infrastructure helpers."""

from .config import Settings, load_settings
from .database import create_db_engine, get_session
from .logs import configure_logging
from .time import isoformat_utc, utcnow

__all__ = [
    "Settings",
    "configure_logging",
    "create_db_engine",
    "get_session",
    "isoformat_utc",
    "load_settings",
    "utcnow",
]
