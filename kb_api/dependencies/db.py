from __future__ import annotations

from typing import Iterator

from sqlalchemy.orm import Session

from ..db.session import SessionLocal


def get_db() -> Iterator[Session]:
    """Request-scoped session; uncommitted work is rolled back on the way out."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
