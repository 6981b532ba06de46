"""
Pytest configuration and fixtures for TribeBoard tests.
"""
import os

os.environ.setdefault("TRIBEBOARD_DATABASE_URL", "sqlite://")
os.environ.setdefault("TRIBEBOARD_SECRET_KEY", "test-secret-key-for-testing-only")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tribeboard.api.deps import get_db, get_remote_store
from tribeboard.db.base import Base
from tribeboard.main import app
from tribeboard.models.user import User
from tribeboard.services.security import create_access_token
from tribeboard.services.stores import RemoteLookupResult


class FakeLocalStore:
    """In-memory local store that records every lookup."""

    def __init__(self, codes=(), collide_always=False, error=None):
        self.codes = {c.upper() for c in codes}
        self.collide_always = collide_always
        self.error = error
        self.calls = []

    async def exists_by_code(self, code):
        self.calls.append(code)
        if self.error:
            raise self.error
        return self.collide_always or code.upper() in self.codes


class FakeRemoteStore:
    """
    Remote store returning scripted results.

    ``script`` is consumed one entry per call; once it runs out ``default``
    is returned. Entries may be exceptions, which are raised.
    """

    def __init__(self, codes=(), script=(), default=None):
        self.codes = {c.upper() for c in codes}
        self.script = list(script)
        self.default = default
        self.calls = []

    async def exists_by_code(self, code):
        self.calls.append(code)
        if self.script:
            result = self.script.pop(0)
        elif self.default is not None:
            result = self.default
        else:
            result = RemoteLookupResult.FOUND if code.upper() in self.codes else RemoteLookupResult.NOT_FOUND
        if isinstance(result, Exception):
            raise result
        return result


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    def _make(email="parent@example.com", display_name="Pat"):
        user = User(email=email, display_name=display_name, hashed_password="not-a-real-hash")
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def client(db):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_remote_store] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}
    return _headers
