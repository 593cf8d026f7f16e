from __future__ import annotations

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session


def test_healthz_endpoint(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "ok"}


def test_healthz_reports_database_outage(client, monkeypatch):
    def unreachable(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr(Session, "execute", unreachable)

    response = client.get("/healthz")

    assert response.status_code == 503
    assert response.json()["detail"] == "Database unavailable"


def test_health_endpoint(client):
    response = client.get("/health")
    assert response.json() == {"ok": True}
    assert response.headers["x-request-id"]


def test_request_id_is_echoed(client):
    response = client.get("/healthz", headers={"x-request-id": "req-123"})
    assert response.headers["x-request-id"] == "req-123"


def test_metrics_endpoint(client):
    client.get("/documents")
    response = client.get("/metrics")
    assert response.status_code == 200
    assert 'handler="/documents"' in response.text
    assert 'handler="/healthz"' not in response.text
    assert "kb_batch_items" in response.text
