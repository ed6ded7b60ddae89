"""Shared fixtures: in-memory database, app wired with a fake identity provider."""

import itertools
import os

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from todo_backend.app import create_app
from todo_backend.core import Settings
from todo_backend.errors import InvalidAssertion
from todo_backend.models import Account
from todo_backend.services.identity import IdentityAssertion
from todo_backend.services.tokens import SessionTokens

TEST_SECRET = "test-secret"


class FakeIdentityVerifier:
    """Accepts only credentials registered by the test."""

    def __init__(self):
        self.identities = {}

    def register(self, credential, subject, email, name="Test User", picture=None):
        assertion = IdentityAssertion(
            subject=subject, email=email, name=name, picture=picture
        )
        self.identities[credential] = assertion
        return assertion

    async def verify(self, credential):
        try:
            return self.identities[credential]
        except KeyError:
            raise InvalidAssertion("Invalid identity assertion") from None


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def settings():
    return Settings(jwt_secret=TEST_SECRET, google_client_id="test-client-id")


@pytest.fixture
def identity_verifier():
    return FakeIdentityVerifier()


@pytest.fixture
def app(settings, engine, identity_verifier):
    return create_app(settings, engine=engine, identity_verifier=identity_verifier)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def tokens():
    return SessionTokens(TEST_SECRET)


@pytest.fixture
def make_account(session):
    counter = itertools.count(1)

    def _make(**overrides):
        n = next(counter)
        fields = {
            "provider_sub": f"google-sub-{n}",
            "email": f"user{n}@example.com",
            "name": f"User {n}",
        }
        fields.update(overrides)
        account = Account(**fields)
        session.add(account)
        session.commit()
        session.refresh(account)
        return account

    return _make


@pytest.fixture
def auth_headers(tokens):
    def _headers(account):
        return {"Authorization": f"Bearer {tokens.issue(account)}"}

    return _headers
