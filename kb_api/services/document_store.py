from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Mapping, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db.session import SessionFactory
from ..models.documents import Document

logger = logging.getLogger(__name__)

_WRITABLE_FIELDS = frozenset(
    {
        "title",
        "content",
        "type",
        "tags",
        "status",
        "version",
        "previous_version_id",
        "owner_id",
        "owner_name",
        "ai_summary",
        "summary_generated_at",
    }
)
_FILTERABLE_FIELDS = _WRITABLE_FIELDS | {"id"}


class DocumentStoreError(Exception):
    """Raised when the store rejects or fails a read/write."""


class DocumentStore(Protocol):
    def get(self, document_id: str | uuid.UUID) -> Document | None: ...

    def filter(self, **criteria: Any) -> list[Document]: ...

    def create(self, fields: Mapping[str, Any]) -> Document: ...

    def update(self, document_id: str | uuid.UUID, fields: Mapping[str, Any]) -> Document: ...


def parse_document_id(value: str | uuid.UUID) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def _check_fields(fields: Mapping[str, Any], allowed: frozenset[str]) -> None:
    unknown = sorted(set(fields) - allowed)
    if unknown:
        raise DocumentStoreError(f"Unknown document field(s): {', '.join(unknown)}")


class SqlDocumentStore:
    """Document store backed by SQLAlchemy.

    Every call opens its own session and commits on its own, so a failed
    write never leaves a half-applied change behind. SQLite engines share a
    single connection, so the store reports itself unsafe for concurrent
    batch workers there.
    """

    def __init__(self, session_factory: Callable[..., Session] = SessionFactory) -> None:
        self._session_factory = session_factory

    def _session(self) -> Session:
        # rows are handed back detached, keep their loaded state
        return self._session_factory(expire_on_commit=False)

    @property
    def supports_concurrency(self) -> bool:
        with self._session() as db:
            return db.get_bind().dialect.name != "sqlite"

    def _commit(self, db: Session, document: Document, action: str) -> Document:
        try:
            db.commit()
        except Exception as exc:
            db.rollback()
            logger.warning("Document %s failed id=%s: %s", action, document.id, exc)
            raise DocumentStoreError(f"Document could not be {action}d") from exc
        try:
            db.refresh(document)
        except SQLAlchemyError as exc:
            # row is committed; hand back what was written
            logger.warning("Document refresh after %s failed id=%s: %s", action, document.id, exc)
        return document

    def get(self, document_id: str | uuid.UUID) -> Document | None:
        parsed = parse_document_id(document_id)
        if parsed is None:
            return None
        matches = self.filter(id=parsed)
        return matches[0] if matches else None

    def filter(self, **criteria: Any) -> list[Document]:
        _check_fields(criteria, _FILTERABLE_FIELDS)
        if "id" in criteria:
            parsed = parse_document_id(criteria["id"])
            if parsed is None:
                return []
            criteria["id"] = parsed

        with self._session() as db:
            try:
                query = db.query(Document)
                for field, value in criteria.items():
                    query = query.filter(getattr(Document, field) == value)
                return query.order_by(Document.created_at.asc(), Document.id.asc()).all()
            except SQLAlchemyError as exc:
                raise DocumentStoreError("Document lookup failed") from exc

    def create(self, fields: Mapping[str, Any]) -> Document:
        _check_fields(fields, _WRITABLE_FIELDS)
        with self._session() as db:
            document = Document(**dict(fields))
            db.add(document)
            return self._commit(db, document, "create")

    def update(self, document_id: str | uuid.UUID, fields: Mapping[str, Any]) -> Document:
        _check_fields(fields, _WRITABLE_FIELDS)
        parsed = parse_document_id(document_id)
        with self._session() as db:
            document = db.get(Document, parsed) if parsed else None
            if document is None:
                raise DocumentStoreError(f"Document {document_id} not found")

            for field, value in fields.items():
                setattr(document, field, value)
            return self._commit(db, document, "update")
