"""Internal/admin HTTP endpoints with TestClient and dependency overrides."""
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from filegate.api.routes import internal
from filegate.core.config import settings
from filegate.db.session import get_db
from filegate.main import app
from filegate.models.content_record import ContentRecord
from filegate.models.delivery_ticket import DeliveryTicket
from filegate.services.vault.factory import get_redis

ADMIN_KEY = "admin-key-for-tests"
HEADERS = {"X-Admin-Key": ADMIN_KEY}


@pytest.fixture
def client(db_session, gateway):
    def _db():
        yield db_session

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[internal.get_telegram] = lambda: gateway
    with patch.object(settings, "admin_api_key", ADMIN_KEY):
        yield TestClient(app)
    app.dependency_overrides.clear()


def _seed(db_session, key="100000001", source_post_id=10, size=2048):
    db_session.add(
        ContentRecord(
            key=key,
            source_post_id=source_post_id,
            kind="document",
            payload_ref={"file_id": "F"},
            size_bytes=size,
            download_count=3,
            active=True,
        )
    )
    db_session.commit()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_ready_uses_shared_redis(client, fake_redis):
    fake_redis.ping = lambda: True
    app.dependency_overrides[get_redis] = lambda: fake_redis
    resp = client.get("/ready")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ready", "checks": {"database": "ok", "redis": "ok"}}


def test_ready_reports_redis_down(client):
    class DownRedis:
        def ping(self):
            raise ConnectionError("redis unavailable")

    app.dependency_overrides[get_redis] = lambda: DownRedis()
    resp = client.get("/ready")
    assert resp.status_code == 503
    assert resp.json()["checks"] == {"database": "ok", "redis": "redis unavailable"}


def test_metrics(client):
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "deliveries_total" in resp.text


def test_admin_key_required(client):
    assert client.get("/admin/stats").status_code == 401
    assert client.get("/admin/stats", headers={"X-Admin-Key": "wrong"}).status_code == 401


def test_admin_disabled_without_key(db_session):
    app.dependency_overrides[get_db] = lambda: db_session
    try:
        with patch.object(settings, "admin_api_key", None):
            resp = TestClient(app).get("/admin/stats", headers=HEADERS)
        assert resp.status_code == 403
    finally:
        app.dependency_overrides.clear()


def test_source_deleted(client, db_session):
    _seed(db_session)
    resp = client.post("/internal/source-deleted", json={"source_post_ids": [10, 11]}, headers=HEADERS)
    assert resp.status_code == 200
    assert resp.json() == {"deactivated": 1}

    again = client.post("/internal/source-deleted", json={"source_post_ids": [10]}, headers=HEADERS)
    assert again.json() == {"deactivated": 0}


def test_source_deleted_validates_body(client):
    resp = client.post("/internal/source-deleted", json={"source_post_ids": []}, headers=HEADERS)
    assert resp.status_code == 422


def test_tick_runs_due_tickets(client, db_session, gateway):
    now = datetime.now(timezone.utc)
    db_session.add(
        DeliveryTicket(id="due", chat_id=501, message_ids=[1, 2], delete_at=now - timedelta(seconds=5), created_at=now)
    )
    db_session.add(
        DeliveryTicket(id="later", chat_id=501, message_ids=[3], delete_at=now + timedelta(hours=1), created_at=now)
    )
    db_session.commit()

    resp = client.post("/internal/tick", headers=HEADERS)
    assert resp.status_code == 200
    body = resp.json()
    assert body["completed"] == 1
    assert body["deleted_messages"] == 2
    assert gateway.deleted == [(501, 1), (501, 2)]


def test_stats(client, db_session):
    _seed(db_session, key="100000001", source_post_id=10, size=1024)
    _seed(db_session, key="100000002", source_post_id=11, size=1024)
    resp = client.get("/admin/stats", headers=HEADERS)
    body = resp.json()
    assert body["total_files"] == 2
    assert body["total_downloads"] == 6
    assert body["total_size_human"] == "2 KB"
    assert body["pending_tickets"] == 0
