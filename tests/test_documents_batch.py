from __future__ import annotations

import uuid

import pytest

from kb_api.models.documents import DocumentStatusEnum
from kb_api.routers import documents


@pytest.fixture()
def fake_drafter(monkeypatch):
    """Replace the hosted LLM with a canned drafting response."""
    calls: list[str] = []

    def _invoke(prompt, response_model):
        calls.append(prompt)
        if "BROKEN" in prompt:
            raise RuntimeError("Drafting service timed out")
        return response_model(
            suggested_title="Password reset (2025)",
            suggested_content="Use the new self-service portal.",
            changes_summary="Replaced the Settings flow with the portal.",
            requires_review=["Screenshots"],
        )

    monkeypatch.setattr(documents, "invoke_llm", _invoke)
    return calls


def test_batch_archive(client, admin_context, make_document, fetch_document):
    first = make_document(title="Old VPN guide")
    second = make_document(title="Old printer guide")

    response = client.post("/documents/batch", json={"documentIds": [first, second], "action": "archive"})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert body["successful"] == 2
    assert body["failed"] == 0
    assert body["results"]["success"] == [
        {"id": first, "action": "archived"},
        {"id": second, "action": "archived"},
    ]
    for document_id in (first, second):
        persisted = fetch_document(document_id)
        assert persisted.status == DocumentStatusEnum.ARCHIVED
        assert persisted.version == 1


def test_batch_archive_unknown_id_creates_nothing(client, admin_context, count_documents):
    missing = str(uuid.uuid4())

    response = client.post("/documents/batch", json={"documentIds": [missing], "action": "archive"})

    assert response.status_code == 200
    assert response.json()["results"]["failed"] == [{"id": missing, "reason": "Document not found"}]
    assert count_documents() == 0


def test_batch_draft_update_creates_next_version(client, admin_context, make_document, fetch_document, fake_drafter):
    source_id = make_document(title="Password reset", version=2, tags=["account"])

    response = client.post("/documents/batch", json={"documentIds": [source_id], "action": "draft_update"})

    assert response.status_code == 200
    success = response.json()["results"]["success"][0]
    assert success["action"] == "draft_created"
    assert success["changes"] == "Replaced the Settings flow with the portal."
    assert success["requires_review"] == ["Screenshots"]

    draft = fetch_document(success["draft_id"])
    assert draft.title == "[DRAFT] Password reset (2025)"
    assert draft.content == "Use the new self-service portal."
    assert draft.version == 3
    assert str(draft.previous_version_id) == source_id
    assert draft.tags == ["account"]
    assert str(draft.owner_id) == admin_context["user_id"]
    assert draft.owner_name == "Ada Admin"
    assert draft.status == DocumentStatusEnum.ACTIVE

    source = fetch_document(source_id)
    assert source.title == "Password reset"
    assert source.version == 2
    assert source.status == DocumentStatusEnum.ACTIVE


def test_batch_partial_failure_still_returns_200(client, admin_context, make_document, count_documents, fake_drafter):
    healthy = make_document(title="Refund window")
    broken = make_document(title="BROKEN article")

    response = client.post(
        "/documents/batch",
        json={"documentIds": ["nope", broken, healthy], "action": "draft_update"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 3
    assert body["successful"] == 1
    assert body["failed"] == 2
    assert body["results"]["failed"] == [
        {"id": "nope", "reason": "Document not found"},
        {"id": broken, "reason": "Drafting service timed out"},
    ]
    assert body["results"]["success"][0]["id"] == healthy
    assert count_documents() == 3


@pytest.mark.parametrize(
    "payload, detail",
    [
        ({"documentIds": [], "action": "archive"}, "Document IDs required"),
        ({"action": "archive"}, "Document IDs required"),
        ({"documentIds": "abc", "action": "archive"}, "Document IDs required"),
        ({"documentIds": ["abc"], "action": "delete"}, "Unsupported action 'delete'; expected one of: archive, draft_update"),
        ({"documentIds": ["abc"]}, "Unsupported action None; expected one of: archive, draft_update"),
    ],
)
def test_batch_rejects_malformed_input(client, admin_context, payload, detail):
    response = client.post("/documents/batch", json=payload)

    assert response.status_code == 400
    assert response.json()["detail"] == detail


def test_batch_rejects_non_json_body(client, admin_context):
    response = client.post("/documents/batch", content=b"not json", headers={"content-type": "application/json"})

    assert response.status_code == 400


def test_batch_forbidden_for_non_admin(client, user_context, make_document, fetch_document):
    document_id = make_document()

    response = client.post("/documents/batch", json={"documentIds": [document_id], "action": "archive"})

    assert response.status_code == 403
    assert response.json()["detail"] == "Admin access required"
    assert fetch_document(document_id).status == DocumentStatusEnum.ACTIVE


def test_batch_requires_auth(client, make_document):
    response = client.post("/documents/batch", json={"documentIds": [make_document()], "action": "archive"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Authentication required"


def test_batch_unexpected_fault_returns_500(client, admin_context, monkeypatch):
    def explode(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(documents, "run_batch", explode)

    response = client.post("/documents/batch", json={"documentIds": ["x"], "action": "archive"})

    assert response.status_code == 500
    assert response.json()["detail"] == "Batch processing failed"
