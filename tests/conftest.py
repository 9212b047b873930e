"""Shared fixtures: in-memory SQLite database, API client and users per role."""
import os
import tempfile

# Settings are read once at import time, so configure the environment first
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="issuetrack-uploads-"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from issuetrack_core import models
from issuetrack_core.api.main import app
from issuetrack_core.authorization import Session, SessionUser
from issuetrack_core.database import get_db
from issuetrack_core.models import Base, Role

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    """A database session over a freshly created schema."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    """TestClient whose requests use the test database and fresh rate limits."""

    def override_get_db():
        request_db = TestingSessionLocal()
        try:
            yield request_db
        finally:
            request_db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.state.rate_limiters.reset()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Factory creating a persisted user with the given role."""
    counter = {"n": 0}

    def _make_user(role: Role = Role.USER, name: str = None) -> models.User:
        counter["n"] += 1
        user = models.User(
            email=f"{role.value.lower()}{counter['n']}@example.com",
            name=name or f"{role.value.title()} {counter['n']}",
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def admin(make_user):
    return make_user(Role.ADMIN)


@pytest.fixture
def manager(make_user):
    return make_user(Role.ACCOUNT_MANAGER)


@pytest.fixture
def developer(make_user):
    return make_user(Role.DEVELOPER)


@pytest.fixture
def reporter(make_user):
    return make_user(Role.USER)


@pytest.fixture
def outsider(make_user):
    return make_user(Role.USER)


@pytest.fixture
def make_issue(db):
    """Factory creating a persisted issue directly, bypassing the API."""

    def _make_issue(reported_by, status=models.IssueStatus.NEW, assigned_to=None, **fields) -> models.Issue:
        issue = models.Issue(
            title=fields.pop("title", "Checkout page returns 500"),
            status=status,
            reported_by_id=reported_by.id,
            assigned_to_id=assigned_to.id if assigned_to else None,
            **fields,
        )
        db.add(issue)
        db.commit()
        db.refresh(issue)
        return issue

    return _make_issue


def headers_for(user) -> dict:
    """Identity header the upstream provider would set for ``user``."""
    return {"X-User-Id": str(user.id)}


def session_for(role, user_id="00000000-0000-0000-0000-000000000001") -> Session:
    """A session value for pure authorization tests."""
    return Session(user=SessionUser(id=user_id, role=role))
