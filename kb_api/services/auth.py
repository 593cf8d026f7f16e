from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config import settings
from ..models import User, UserRoleEnum, UserSession

logger = logging.getLogger(__name__)


class AuthService:
    """Resolves session cookies to users. Login itself is handled upstream."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # --- Session flow ----------------------------------------------------
    def session_from_token(self, raw_token: str) -> Optional[tuple[UserSession, User]]:
        if not raw_token:
            return None
        hashed = self.hash_token(raw_token)
        now = datetime.now(timezone.utc)
        row = (
            self.db.query(UserSession, User)
            .join(User, User.id == UserSession.user_id)
            .filter(
                UserSession.session_token_hash == hashed,
                UserSession.revoked_at.is_(None),
                UserSession.expires_at > now,
                User.is_active.is_(True),
            )
            .one_or_none()
        )
        return row

    def issue_session(self, user: User, ttl: timedelta | None = None) -> str:
        raw_token = secrets.token_urlsafe(32)
        expires_at = datetime.now(timezone.utc) + (ttl or timedelta(hours=settings.session_ttl_hours))
        self.db.add(
            UserSession(
                user_id=user.id,
                session_token_hash=self.hash_token(raw_token),
                expires_at=expires_at,
            )
        )
        user.last_login_at = datetime.now(timezone.utc)
        self.db.commit()

        logger.info("session_issued user_id=%s expires_at=%s", user.id, expires_at.isoformat())
        return raw_token

    def revoke_session(self, raw_token: str) -> None:
        hashed = self.hash_token(raw_token)
        now = datetime.now(timezone.utc)
        updated = (
            self.db.query(UserSession)
            .filter(UserSession.session_token_hash == hashed, UserSession.revoked_at.is_(None))
            .update({"revoked_at": now})
        )
        if updated:
            logger.info("session_revoked hash=%s", hashed[:8])
        self.db.commit()

    # --- Helpers ---------------------------------------------------------
    @staticmethod
    def hash_token(value: str) -> str:
        return hashlib.sha256(value.encode("utf-8")).hexdigest()

    def get_or_create_user(
        self,
        email: str,
        full_name: str | None = None,
        role: UserRoleEnum = UserRoleEnum.USER,
    ) -> User:
        normalized_email = email.strip().lower()
        user = (
            self.db.query(User)
            .filter(func.lower(User.email) == normalized_email)
            .one_or_none()
        )
        if user:
            return user

        user = User(email=normalized_email, full_name=full_name, role=role)
        self.db.add(user)
        self.db.flush()
        logger.info("user_created user_id=%s role=%s", user.id, role.value)
        return user
