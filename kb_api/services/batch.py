from __future__ import annotations

import enum
import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence, Union

from ..models.documents import Document, DocumentStatusEnum
from ..models.users import User, UserRoleEnum
from .document_store import DocumentStore
from .drafting import DraftSuggestion, build_draft_prompt, draft_ai_summary, draft_title
from .llm import LLMInvoker, as_response, invoke_llm
from .metrics import record_batch_item, record_draft_created

logger = logging.getLogger(__name__)

NOT_FOUND_REASON = "Document not found"


class BatchAction(str, enum.Enum):
    ARCHIVE = "archive"
    DRAFT_UPDATE = "draft_update"


class BatchError(Exception):
    """Request-level failure raised before any document is touched."""


class Unauthorized(BatchError):
    pass


class Forbidden(BatchError):
    pass


class InvalidRequest(BatchError):
    pass


@dataclass(frozen=True)
class Requester:
    user_id: uuid.UUID | None
    full_name: str | None
    role: UserRoleEnum

    @property
    def is_privileged(self) -> bool:
        return self.role == UserRoleEnum.ADMIN

    @classmethod
    def from_user(cls, user: User) -> "Requester":
        role = user.role if isinstance(user.role, UserRoleEnum) else UserRoleEnum(user.role)
        return cls(user_id=user.id, full_name=user.full_name, role=role)


@dataclass(frozen=True)
class BatchSuccess:
    id: str
    action: str
    draft_id: str | None = None
    changes: str | None = None
    requires_review: tuple[str, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"id": self.id, "action": self.action}
        if self.draft_id is not None:
            payload["draft_id"] = self.draft_id
            payload["changes"] = self.changes
            payload["requires_review"] = list(self.requires_review)
        return payload


@dataclass(frozen=True)
class BatchFailure:
    id: str
    reason: str

    def to_payload(self) -> dict[str, Any]:
        return {"id": self.id, "reason": self.reason}


Outcome = Union[BatchSuccess, BatchFailure]


@dataclass(frozen=True)
class BatchResult:
    """Outcomes in input order, one per requested id."""

    action: BatchAction
    outcomes: tuple[Outcome, ...] = field(default_factory=tuple)

    @property
    def success(self) -> list[BatchSuccess]:
        return [outcome for outcome in self.outcomes if isinstance(outcome, BatchSuccess)]

    @property
    def failed(self) -> list[BatchFailure]:
        return [outcome for outcome in self.outcomes if isinstance(outcome, BatchFailure)]

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def successful(self) -> int:
        return len(self.success)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    def to_payload(self) -> dict[str, Any]:
        return {
            "results": {
                "success": [outcome.to_payload() for outcome in self.success],
                "failed": [outcome.to_payload() for outcome in self.failed],
            },
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed_count,
        }


def authorize(requester: Requester | None) -> Requester:
    if requester is None:
        raise Unauthorized("Authentication required")
    if not requester.is_privileged:
        raise Forbidden("Admin access required")
    return requester


def parse_action(action: BatchAction | str | None) -> BatchAction:
    if isinstance(action, BatchAction):
        return action
    try:
        return BatchAction(action)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in BatchAction)
        raise InvalidRequest(f"Unsupported action {action!r}; expected one of: {allowed}") from exc


def validate_document_ids(document_ids: Any, max_documents: int | None = None) -> list[str]:
    if not isinstance(document_ids, (list, tuple)) or not document_ids:
        raise InvalidRequest("Document IDs required")
    if not all(isinstance(value, str) and value.strip() for value in document_ids):
        raise InvalidRequest("Document IDs must be non-empty strings")
    if max_documents is not None and len(document_ids) > max_documents:
        raise InvalidRequest(f"At most {max_documents} documents per batch")
    return list(document_ids)


class BatchProcessor:
    """Applies one action to each document, committing every item on its own."""

    def __init__(
        self,
        store: DocumentStore,
        requester: Requester,
        action: BatchAction,
        invoke: LLMInvoker = invoke_llm,
    ) -> None:
        self.store = store
        self.requester = requester
        self.action = action
        self.invoke = invoke

    def process(self, document_id: str) -> Outcome:
        """Outcomes carry the id exactly as requested; only the lookup is trimmed."""
        try:
            document = self.store.get(document_id.strip())
            if document is None:
                outcome: Outcome = BatchFailure(id=document_id, reason=NOT_FOUND_REASON)
            elif self.action == BatchAction.ARCHIVE:
                outcome = self._archive(document_id, document)
            elif self.action == BatchAction.DRAFT_UPDATE:
                outcome = self._draft_update(document_id, document)
            else:  # pragma: no cover - enum is closed
                raise ValueError(f"Unhandled batch action {self.action!r}")
        except Exception as exc:
            logger.warning("Batch %s failed for document %s: %s", self.action.value, document_id, exc)
            outcome = BatchFailure(id=document_id, reason=str(exc) or exc.__class__.__name__)

        record_batch_item(self.action.value, isinstance(outcome, BatchSuccess))
        return outcome

    def _archive(self, document_id: str, document: Document) -> BatchSuccess:
        self.store.update(document.id, {"status": DocumentStatusEnum.ARCHIVED})
        return BatchSuccess(id=document_id, action="archived")

    def _draft_update(self, document_id: str, source: Document) -> BatchSuccess:
        prompt = build_draft_prompt(source.title, source.content or "")
        suggestion = as_response(self.invoke(prompt, DraftSuggestion), DraftSuggestion)

        draft = self.store.create(
            {
                "title": draft_title(suggestion, source.title),
                "content": suggestion.suggested_content if suggestion.suggested_content is not None else (source.content or ""),
                "type": source.type,
                "tags": list(source.tags or []),
                "status": DocumentStatusEnum.ACTIVE,
                "version": (source.version or 1) + 1,
                "previous_version_id": source.id,
                "owner_id": self.requester.user_id,
                "owner_name": self.requester.full_name,
                "ai_summary": draft_ai_summary(suggestion),
            }
        )
        record_draft_created()
        logger.info("draft_created source_id=%s draft_id=%s version=%s", source.id, draft.id, draft.version)
        return BatchSuccess(
            id=document_id,
            action="draft_created",
            draft_id=str(draft.id),
            changes=suggestion.changes_summary,
            requires_review=tuple(suggestion.requires_review),
        )


def _worker_count(store: DocumentStore, max_workers: int, items: int) -> int:
    if max_workers <= 1 or items <= 1:
        return 1
    if not getattr(store, "supports_concurrency", True):
        logger.info("Store does not support concurrent writes; processing batch sequentially")
        return 1
    return min(max_workers, items)


def run_batch(
    requester: Requester | None,
    document_ids: Sequence[str] | Any,
    action: BatchAction | str | None,
    *,
    store: DocumentStore,
    invoke: LLMInvoker = invoke_llm,
    max_workers: int = 1,
    max_documents: int | None = None,
) -> BatchResult:
    """Apply ``action`` to every id and return one outcome per id.

    Authorization and input validation happen before the store is touched;
    after that, a failing document only produces a ``BatchFailure`` for that
    id and never stops the rest of the batch.
    """
    authorized = authorize(requester)
    ids = validate_document_ids(document_ids, max_documents)
    batch_action = parse_action(action)

    processor = BatchProcessor(store, authorized, batch_action, invoke=invoke)
    outcomes: Iterable[Outcome]
    workers = _worker_count(store, max_workers, len(ids))
    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = list(pool.map(processor.process, ids))
    else:
        outcomes = [processor.process(document_id) for document_id in ids]

    result = BatchResult(action=batch_action, outcomes=tuple(outcomes))
    logger.info(
        "batch_processed action=%s user_id=%s total=%s successful=%s failed=%s",
        batch_action.value,
        authorized.user_id,
        result.total,
        result.successful,
        result.failed_count,
    )
    return result
