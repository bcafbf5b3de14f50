"""
tests/conftest.py: Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os
import tempfile

# ---------------------------------------------------------------------------
# Settings are read once at import time, so the test environment has to be
# in place before anything under ``app`` is imported.
# ---------------------------------------------------------------------------
_UPLOAD_DIR = tempfile.mkdtemp(prefix="huddle-uploads-")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_DIR"] = _UPLOAD_DIR
os.environ["SECRET_KEY"] = "test-secret-for-pytest-only-" + "x" * 40
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENVIRONMENT"] = "test"
os.environ["ENABLE_SCHEDULER"] = "false"
os.environ["API_BASE_URL"] = "http://testserver"

import pytest  # noqa: E402

from app.infrastructure.database import Base, SessionLocal, engine  # noqa: E402

# Register every table on Base.metadata
import app.main  # noqa: E402,F401
from app.application.services.auth_service import create_user, issue_token  # noqa: E402
from app.infrastructure.repositories.community_repository import SQLAlchemyCommunityRepository  # noqa: E402
from app.infrastructure.repositories.notification_repository import SQLAlchemyNotificationRepository  # noqa: E402
from app.infrastructure.repositories.post_repository import SQLAlchemyPostRepository  # noqa: E402

# Smallest valid PNG: 1x1 transparent pixel
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture(autouse=True)
def _fresh_schema():
    """Every test starts from empty tables on the shared in-memory database."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def community_repo(db_session):
    return SQLAlchemyCommunityRepository(db_session)


@pytest.fixture
def post_repo(db_session):
    return SQLAlchemyPostRepository(db_session)


@pytest.fixture
def notification_repo(db_session):
    return SQLAlchemyNotificationRepository(db_session)


@pytest.fixture
def make_user(db_session):
    """Factory: ``make_user("alice", interests=["tech"])``."""
    def _make(username: str, interests=None, verified: bool = True, **kwargs):
        user = create_user(
            db_session,
            username=username,
            email=f"{username}@example.com",
            password=kwargs.pop("password", "secret123"),
            bio=kwargs.pop("bio", f"I am {username}"),
            interests=interests or [],
            **kwargs,
        )
        user.is_email_verified = verified
        db_session.commit()
        return user
    return _make


@pytest.fixture
def make_community(community_repo):
    """Factory creating a community owned by ``owner``."""
    from app.application.services.community_service import create_community

    def _make(owner, name: str, categories=None, visibility: str = "public"):
        return create_community(
            community_repo,
            creator=owner,
            name=name,
            description=f"All about {name}",
            categories=categories or ["general"],
            visibility=visibility,
        )
    return _make


@pytest.fixture
def auth_headers():
    """Factory: ``auth_headers(user)`` gives a bearer header for that user."""
    def _headers(user) -> dict:
        return {"Authorization": f"Bearer {issue_token(user)}"}
    return _headers


@pytest.fixture
def client():
    """FastAPI TestClient; the lifespan is not entered so no scheduler starts."""
    from fastapi.testclient import TestClient

    return TestClient(app.main.app, raise_server_exceptions=False)
