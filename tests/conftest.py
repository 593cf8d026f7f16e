from __future__ import annotations

import os
import pathlib
import sys
import uuid
from typing import Any, Callable, Iterator

import pytest
from fastapi.testclient import TestClient

ROOT_DIR = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

os.environ["DATABASE_URL"] = os.getenv("TEST_DATABASE_URL", "sqlite+pysqlite:///:memory:")

from kb_api.config import settings
from kb_api.db.session import SessionLocal, engine
from kb_api.main import app
from kb_api.models import Document, DocumentStatusEnum, User, UserRoleEnum
from kb_api.models.base import Base
from kb_api.services.auth import AuthService


@pytest.fixture(scope="session", autouse=True)
def create_schema() -> Iterator[None]:
    """Create every table once per test session."""
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="session")
def client() -> Iterator[TestClient]:
    """Provide a FastAPI TestClient instance."""
    with TestClient(app) as _client:
        yield _client


def _login(client: TestClient, email: str, full_name: str, role: UserRoleEnum) -> dict[str, str]:
    with SessionLocal() as session:
        service = AuthService(session)
        user = service.get_or_create_user(email, full_name, role)
        token = service.issue_session(user)
        user_id = str(user.id)

    client.cookies.set(settings.cookie_name, token)
    return {"user_id": user_id, "token": token, "full_name": full_name}


@pytest.fixture()
def admin_context(client: TestClient) -> Iterator[dict[str, str]]:
    """Authenticate the client as an admin."""
    try:
        yield _login(client, "admin@example.com", "Ada Admin", UserRoleEnum.ADMIN)
    finally:
        client.cookies.clear()


@pytest.fixture()
def user_context(client: TestClient) -> Iterator[dict[str, str]]:
    """Authenticate the client as a regular, non-privileged user."""
    try:
        yield _login(client, "agent@example.com", "Sam Agent", UserRoleEnum.USER)
    finally:
        client.cookies.clear()


@pytest.fixture()
def make_document() -> Callable[..., str]:
    """Insert a document directly and return its id."""

    def _make(**overrides: Any) -> str:
        fields: dict[str, Any] = {
            "title": "Resetting your password",
            "content": "Open Settings > Security and click Reset.",
            "type": "how-to",
            "tags": ["account", "security"],
            "status": DocumentStatusEnum.ACTIVE,
            "version": 1,
        }
        fields.update(overrides)
        with SessionLocal() as session:
            document = Document(**fields)
            session.add(document)
            session.commit()
            return str(document.id)

    return _make


@pytest.fixture()
def fetch_document() -> Callable[[str], Document | None]:
    def _fetch(document_id: str) -> Document | None:
        with SessionLocal() as session:
            document = session.get(Document, uuid.UUID(document_id))
            if document is not None:
                session.expunge(document)
            return document

    return _fetch


@pytest.fixture(autouse=True)
def cleanup_database() -> Iterator[None]:
    """Empty every table after each test to keep isolation."""
    yield
    with SessionLocal() as session:
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()


@pytest.fixture()
def count_documents() -> Callable[[], int]:
    def _count() -> int:
        with SessionLocal() as session:
            return session.query(Document).count()

    return _count


@pytest.fixture()
def users_by_email() -> Callable[[str], User | None]:
    def _lookup(email: str) -> User | None:
        with SessionLocal() as session:
            user = session.query(User).filter(User.email == email).one_or_none()
            if user is not None:
                session.expunge(user)
            return user

    return _lookup
