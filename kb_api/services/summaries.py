from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from ..models.documents import Document
from .document_store import DocumentStore
from .drafting import SUMMARY_FALLBACK, DocumentSummary, build_summary_prompt
from .llm import LLMInvoker, as_response, invoke_llm
from .metrics import record_summary_generated

logger = logging.getLogger(__name__)


class DocumentNotFound(Exception):
    def __init__(self, document_id: str | uuid.UUID) -> None:
        super().__init__("Document not found")
        self.document_id = document_id


def generate_document_summary(
    document_id: str | uuid.UUID,
    *,
    store: DocumentStore,
    invoke: LLMInvoker = invoke_llm,
) -> Document:
    document = store.get(document_id)
    if document is None:
        raise DocumentNotFound(document_id)

    response = as_response(invoke(build_summary_prompt(document), DocumentSummary), DocumentSummary)
    summary = (response.summary or "").strip()
    fallback = not summary
    if fallback:
        logger.warning("Summary generation returned no text for document %s", document_id)
        summary = SUMMARY_FALLBACK

    updated = store.update(
        document.id,
        {"ai_summary": summary, "summary_generated_at": datetime.now(timezone.utc)},
    )
    record_summary_generated(fallback)
    return updated
