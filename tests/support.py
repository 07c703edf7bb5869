"""Shared fixtures for the API tests: isolated database, fake mailer and media store."""

import unittest
from typing import Any

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from commune_api.api.deps import get_mailer, get_media_store
from commune_api.core.database import get_db
from commune_api.core.errors import ServiceError
from commune_api.main import app
from commune_api.models import Base
from commune_api.services.media import StoredMedia


def make_session_factory() -> sessionmaker:
    """Fresh in-memory database shared by every connection of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


class FakeMailer:
    """Records outgoing mail instead of talking to SMTP."""

    def __init__(self, error: ServiceError | None = None) -> None:
        self.error = error
        self.resets: list[tuple[str, str]] = []
        self.contacts: list[Any] = []

    def send_password_reset(self, to: str, token: str) -> None:
        if self.error:
            raise self.error
        self.resets.append((to, token))

    def send_contact_notification(self, contact: Any) -> None:
        if self.error:
            raise self.error
        self.contacts.append(contact.id)


class FakeMediaStore:
    """In-process stand-in for Cloudinary."""

    max_upload_bytes = 1024 * 1024

    def __init__(self, error: ServiceError | None = None) -> None:
        self.error = error
        self.uploads: list[tuple[str, str, str]] = []
        self.discarded: list[tuple[str | None, str]] = []

    async def upload(self, data: bytes, filename: str, folder: str, resource_type: str = "image") -> StoredMedia:
        if self.error:
            raise self.error
        self.uploads.append((filename, folder, resource_type))
        n = len(self.uploads)
        kind = "video" if filename.endswith(".mp4") else "image"
        return StoredMedia(
            url=f"https://res.cloudinary.com/demo/{kind}/upload/{folder}/asset{n}",
            public_id=f"{folder}/asset{n}",
            resource_type=kind,
        )

    async def discard(self, public_id: str | None, resource_type: str = "image") -> None:
        if public_id:
            self.discarded.append((public_id, resource_type))


class ApiTestCase(unittest.TestCase):
    """TestClient against the real app with the database and external collaborators swapped out."""

    def setUp(self) -> None:
        self.session_factory = make_session_factory()
        self.mailer = FakeMailer()
        self.media = FakeMediaStore()

        def override_get_db():
            db = self.session_factory()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_mailer] = lambda: self.mailer
        app.dependency_overrides[get_media_store] = lambda: self.media
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def session(self) -> Session:
        return self.session_factory()

    def register(self, email: str, password: str = "secret-pass", **extra: Any) -> dict[str, Any]:
        resp = self.client.post("/api/auth/register", json={"email": email, "password": password, **extra})
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()

    def auth(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}
