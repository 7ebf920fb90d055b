"""Shared pytest fixtures for the application tests."""

from __future__ import annotations

import os

# Settings are read at import time by app.database; point them at SQLite.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from app.core.config import Settings, get_settings  # noqa: E402
from app.core.email_client import get_email_client  # noqa: E402
from app.core.errors import NotifyFailed, UploadFailed  # noqa: E402
from app.core.storage_utils import get_photo_store  # noqa: E402
from app.database import get_session  # noqa: E402
from app.main import app  # noqa: E402
from app.models.user import User  # noqa: E402
from app.repositories.user_repo import UserRepository  # noqa: E402


class FakeNotifier:
    """In-memory stand-in for the SMTP client."""

    def __init__(self):
        self.sent: list[dict] = []
        self.fail = False

    def send_verification_code(self, to_email, full_name, code, ttl_minutes):
        if self.fail:
            raise NotifyFailed()
        self.sent.append(
            {"to": to_email, "name": full_name, "code": code, "ttl": ttl_minutes}
        )

    def last_code_for(self, email: str) -> str:
        for message in reversed(self.sent):
            if message["to"] == email:
                return message["code"]
        raise AssertionError(f"no code sent to {email}")


class FakePhotoStore:
    """In-memory stand-in for Supabase Storage."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail = False

    def upload(self, path, file_bytes, content_type):
        if self.fail:
            raise UploadFailed()
        self.objects[path] = file_bytes
        return f"https://files.test/storage/v1/object/public/avatars/{path}"

    def delete_public_url(self, url):
        self.deleted.append(url)


@pytest.fixture()
def engine():
    """Fresh in-memory database per test."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(test_engine)
    yield test_engine
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture()
def session(engine):
    with Session(engine) as db_session:
        yield db_session


@pytest.fixture()
def settings() -> Settings:
    return Settings(DATABASE_URL="sqlite://", JWT_SECRET="test-secret")


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def photo_store() -> FakePhotoStore:
    return FakePhotoStore()


@pytest.fixture()
def repo() -> UserRepository:
    return UserRepository()


@pytest.fixture()
def client(engine, settings, notifier, photo_store):
    """Test client wired to the in-memory database and fake collaborators."""

    def _session_override():
        with Session(engine) as db_session:
            yield db_session

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_email_client] = lambda: notifier
    app.dependency_overrides[get_photo_store] = lambda: photo_store

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture()
def load_user(engine):
    """Read an account straight from the test database."""

    def _load(email: str) -> User | None:
        with Session(engine) as db_session:
            return UserRepository().find_by_email(db_session, email)

    return _load
