"""FastAPI application factory and configuration."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel

from . import models  # noqa: F401 - ensure models are registered with SQLModel
from .api import register_exception_handlers, register_routes
from .api.guard import AccessGuard
from .core import Settings, configure_logging, create_db_engine, load_settings
from .services.identity import GoogleIdentityVerifier, IdentityVerifier
from .services.tokens import SessionTokens

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = app.state.engine
    if app.state.settings.db_reset:
        logger.warning("DB_RESET is set; dropping all tables")
        SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield


def create_app(
    settings: Optional[Settings] = None,
    *,
    engine: Optional[Engine] = None,
    identity_verifier: Optional[IdentityVerifier] = None,
) -> FastAPI:
    """Build the application.

    The identity verifier and database engine are injected here; when omitted
    they are built from ``settings`` (Google ID tokens, ``DATABASE_URL``).
    Startup fails if the signing secret is not configured.
    """

    settings = settings or load_settings()
    configure_logging(settings.log_level)

    tokens = SessionTokens(settings.jwt_secret)
    if identity_verifier is None:
        identity_verifier = GoogleIdentityVerifier(settings.google_client_id)

    app = FastAPI(title="Todo Task API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine or create_db_engine(settings.database_url)
    app.state.tokens = tokens
    app.state.guard = AccessGuard(tokens)
    app.state.identity_verifier = identity_verifier

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    register_exception_handlers(app)
    register_routes(app)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("todo_backend.app:app", host="127.0.0.1", port=3001, reload=True)
