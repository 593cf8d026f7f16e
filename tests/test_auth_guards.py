from __future__ import annotations

from datetime import timedelta

from kb_api.config import settings
from kb_api.db.session import SessionLocal
from kb_api.models import UserRoleEnum
from kb_api.services.auth import AuthService


def test_unknown_cookie_is_rejected(client):
    client.cookies.set(settings.cookie_name, "not-a-session")
    try:
        response = client.get("/documents")
    finally:
        client.cookies.clear()

    assert response.status_code == 401
    assert response.json()["detail"] == "Authentication required"


def test_revoked_session_is_rejected(client, user_context):
    with SessionLocal() as db:
        AuthService(db).revoke_session(user_context["token"])

    response = client.get("/documents")

    assert response.status_code == 401


def test_expired_session_is_rejected(client):
    with SessionLocal() as db:
        service = AuthService(db)
        user = service.get_or_create_user("stale@example.com", "Stale User", UserRoleEnum.ADMIN)
        token = service.issue_session(user, ttl=timedelta(seconds=-1))

    client.cookies.set(settings.cookie_name, token)
    try:
        response = client.post("/documents/batch", json={"documentIds": ["x"], "action": "archive"})
    finally:
        client.cookies.clear()

    assert response.status_code == 401


def test_inactive_user_is_rejected(client, admin_context):
    with SessionLocal() as db:
        user = AuthService(db).get_or_create_user("admin@example.com")
        user.is_active = False
        db.commit()

    response = client.get("/documents")

    assert response.status_code == 401


def test_hash_token_is_stable():
    assert AuthService.hash_token("abc") == AuthService.hash_token("abc")
    assert AuthService.hash_token("abc") != "abc"
