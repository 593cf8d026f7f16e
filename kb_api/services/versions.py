from __future__ import annotations

import uuid

from ..models.documents import Document
from .document_store import DocumentStore
from .drafting import VersionAnalysis, build_version_comparison_prompt
from .llm import LLMInvoker, as_response, invoke_llm
from .summaries import DocumentNotFound


def version_history(document_id: str | uuid.UUID, *, store: DocumentStore) -> list[Document]:
    """Walk ``previous_version_id`` links, newest first.

    Stops at a dangling link or when a document repeats.
    """
    document = store.get(document_id)
    if document is None:
        raise DocumentNotFound(document_id)

    chain = [document]
    seen = {document.id}
    while document.previous_version_id is not None:
        previous = store.get(document.previous_version_id)
        if previous is None or previous.id in seen:
            break
        chain.append(previous)
        seen.add(previous.id)
        document = previous
    return chain


def compare_versions(
    current_id: str | uuid.UUID,
    previous_id: str | uuid.UUID,
    *,
    store: DocumentStore,
    invoke: LLMInvoker = invoke_llm,
) -> VersionAnalysis:
    current = store.get(current_id)
    if current is None:
        raise DocumentNotFound(current_id)
    previous = store.get(previous_id)
    if previous is None:
        raise DocumentNotFound(previous_id)

    response = invoke(build_version_comparison_prompt(current, previous), VersionAnalysis)
    return as_response(response, VersionAnalysis)
