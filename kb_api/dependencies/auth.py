from __future__ import annotations

from dataclasses import dataclass

from fastapi import HTTPException, Request, status

from ..config import settings
from ..db.session import SessionLocal
from ..models import User, UserSession
from ..services.auth import AuthService
from ..services.batch import Requester


@dataclass
class AuthContext:
    user: User
    session: UserSession

    @property
    def requester(self) -> Requester:
        return Requester.from_user(self.user)


def _resolve_context(request: Request) -> AuthContext | None:
    raw_token = request.cookies.get(settings.cookie_name)
    with SessionLocal() as db:
        service = AuthService(db)
        row = service.session_from_token(raw_token or "")
        if not row:
            return None

        session, user = row
        request.state.user_id = str(user.id)
        # detach objects before session closes
        db.expunge_all()
        return AuthContext(user=user, session=session)


def require_auth(request: Request) -> AuthContext:
    context = _resolve_context(request)
    if context is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return context


def optional_requester(request: Request) -> Requester | None:
    """Requester capability for endpoints that authorize inside the service layer."""
    context = _resolve_context(request)
    return context.requester if context else None
