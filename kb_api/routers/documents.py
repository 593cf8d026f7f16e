from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ..config import settings
from ..dependencies.auth import AuthContext, optional_requester, require_auth
from ..dependencies.db import get_db
from ..models.documents import Document, DocumentStatusEnum
from ..services.batch import Forbidden, InvalidRequest, Requester, Unauthorized, run_batch
from ..services.document_store import DocumentStoreError, SqlDocumentStore, parse_document_id
from ..services.llm import invoke_llm
from ..services.summaries import DocumentNotFound, generate_document_summary
from ..services.versions import compare_versions, version_history

logger = logging.getLogger(__name__)

router = APIRouter()


def get_document_store() -> SqlDocumentStore:
    return SqlDocumentStore()


def serialize_document(document: Document) -> Dict[str, Any]:
    return {
        "id": str(document.id),
        "title": document.title,
        "content": document.content,
        "type": document.type,
        "tags": list(document.tags or []),
        "status": document.status.value if isinstance(document.status, DocumentStatusEnum) else document.status,
        "version": document.version,
        "previous_version_id": str(document.previous_version_id) if document.previous_version_id else None,
        "owner_id": str(document.owner_id) if document.owner_id else None,
        "owner_name": document.owner_name,
        "ai_summary": document.ai_summary,
        "summary_generated_at": document.summary_generated_at.isoformat() if document.summary_generated_at else None,
        "created_at": document.created_at.isoformat() if document.created_at else None,
        "updated_at": document.updated_at.isoformat() if document.updated_at else None,
    }


def _parse_id_or_400(value: str) -> uuid.UUID:
    parsed = parse_document_id(value)
    if parsed is None:
        raise HTTPException(status_code=400, detail="Invalid document id")
    return parsed


@router.post("/documents/batch")
async def batch_process_documents(
    request: Request,
    requester: Requester | None = Depends(optional_requester),
    store: SqlDocumentStore = Depends(get_document_store),
):
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        payload = None
    if not isinstance(payload, dict):
        payload = {}

    try:
        result = await run_in_threadpool(
            run_batch,
            requester,
            payload.get("documentIds"),
            payload.get("action"),
            store=store,
            invoke=invoke_llm,
            max_workers=settings.batch_max_workers,
            max_documents=settings.batch_max_documents,
        )
    except Unauthorized as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except Forbidden as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except InvalidRequest as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Batch processing error")
        raise HTTPException(status_code=500, detail="Batch processing failed") from exc

    return result.to_payload()


@router.get("/documents")
def list_documents(
    status: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    context: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    query = db.query(Document)
    if status:
        try:
            query = query.filter(Document.status == DocumentStatusEnum(status.strip().lower()))
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="Invalid status filter") from exc

    total = query.count()
    documents = (
        query.order_by(Document.created_at.desc(), Document.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "items": [serialize_document(document) for document in documents],
        "pagination": {"page": page, "limit": limit, "total": total},
    }


class CreateDocumentPayload(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    content: str = ""
    type: str | None = None
    tags: list[str] = Field(default_factory=list)


@router.post("/documents", status_code=201)
def create_document(
    payload: CreateDocumentPayload,
    context: AuthContext = Depends(require_auth),
    store: SqlDocumentStore = Depends(get_document_store),
):
    try:
        document = store.create(
            {
                "title": payload.title.strip(),
                "content": payload.content,
                "type": payload.type,
                "tags": payload.tags,
                "owner_id": context.user.id,
                "owner_name": context.user.full_name,
            }
        )
    except DocumentStoreError as exc:
        raise HTTPException(status_code=500, detail="Unable to create document") from exc
    return serialize_document(document)


@router.get("/documents/{document_id}")
def get_document(
    document_id: str,
    context: AuthContext = Depends(require_auth),
    store: SqlDocumentStore = Depends(get_document_store),
):
    document = store.get(_parse_id_or_400(document_id))
    if document is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return serialize_document(document)


@router.post("/documents/{document_id}/summary")
def summarize_document(
    document_id: str,
    context: AuthContext = Depends(require_auth),
    store: SqlDocumentStore = Depends(get_document_store),
):
    parsed = _parse_id_or_400(document_id)
    try:
        document = generate_document_summary(parsed, store=store, invoke=invoke_llm)
    except DocumentNotFound as exc:
        raise HTTPException(status_code=404, detail="Document not found") from exc
    except Exception as exc:
        logger.exception("Error generating summary for %s", document_id)
        raise HTTPException(status_code=500, detail="Unable to generate summary") from exc

    return {"success": True, "summary": document.ai_summary}


@router.get("/documents/{document_id}/versions")
def list_document_versions(
    document_id: str,
    context: AuthContext = Depends(require_auth),
    store: SqlDocumentStore = Depends(get_document_store),
):
    try:
        chain = version_history(_parse_id_or_400(document_id), store=store)
    except DocumentNotFound as exc:
        raise HTTPException(status_code=404, detail="Document not found") from exc
    return {"items": [serialize_document(document) for document in chain]}


class CompareVersionsPayload(BaseModel):
    current_version_id: str = Field(..., alias="currentVersionId")
    previous_version_id: str = Field(..., alias="previousVersionId")


@router.post("/documents/versions/compare")
def compare_document_versions(
    payload: CompareVersionsPayload,
    context: AuthContext = Depends(require_auth),
    store: SqlDocumentStore = Depends(get_document_store),
):
    current_id = _parse_id_or_400(payload.current_version_id)
    previous_id = _parse_id_or_400(payload.previous_version_id)
    try:
        analysis = compare_versions(current_id, previous_id, store=store, invoke=invoke_llm)
    except DocumentNotFound as exc:
        raise HTTPException(status_code=404, detail="Version not found") from exc
    except Exception as exc:
        logger.exception("Error comparing versions %s and %s", current_id, previous_id)
        raise HTTPException(status_code=500, detail="Unable to analyze version changes") from exc

    return {
        "success": True,
        "current_version": str(current_id),
        "previous_version": str(previous_id),
        "analysis": analysis.model_dump(),
    }
