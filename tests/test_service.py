# tests/test_service.py
# PURPOSE: health checks, envelope of error responses, middleware headers.

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from conftest import PASSWORD
from taskboard.main import app
from taskboard.store_db import get_db


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_live_and_ready(client):
    assert client.get("/live").json() == {"status": "live"}
    r = client.get("/ready")
    assert r.status_code == 200
    assert r.json() == {"status": "ready"}


def test_api_info_lists_routes(client):
    r = client.get("/api/")
    assert r.status_code == 200
    data = r.json()
    assert data["auth"]["register"] == "/api/users/register"
    assert data["tasks"] == "/api/task"


def test_request_id_is_echoed_or_generated(client):
    r = client.get("/health", headers={"X-Request-ID": "abc123"})
    assert r.headers["X-Request-ID"] == "abc123"
    generated = client.get("/health").headers["X-Request-ID"]
    assert len(generated) == 32


@pytest.mark.parametrize("bad", ["x" * 129, "abc def", "id\\u00e9", "a;b", "<script>"])
def test_unsafe_request_id_is_replaced(client, bad):
    r = client.get("/health", headers={"X-Request-ID": bad})
    echoed = r.headers["X-Request-ID"]
    assert echoed != bad
    assert len(echoed) == 32


def test_request_id_at_length_limit_is_kept(client):
    rid = "a.B-9_" * 21 + "xy"  # 128 chars
    assert client.get("/health", headers={"X-Request-ID": rid}).headers["X-Request-ID"] == rid


def test_security_headers(client):
    r = client.get("/health")
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
    assert "Content-Security-Policy" in r.headers


def test_unknown_route_uses_error_envelope(client):
    r = client.get("/api/nope")
    assert r.status_code == 404
    body = r.json()
    assert body["status"] == 404
    assert body["path"] == "/api/nope"
    assert "error" in body and "message" in body


def test_malformed_json_is_validation_error(client):
    r = client.post(
        "/api/users/login",
        content="{not json",
        headers={"Content-Type": "application/json"},
    )
    assert r.status_code == 400
    assert r.json()["error"] == "ValidationError"


def test_store_failure_is_internal_error(client):
    # Session on an empty database: every query fails with "no such table"
    broken = create_engine("sqlite://")
    BrokenSession = sessionmaker(bind=broken)

    def broken_get_db():
        db = BrokenSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = broken_get_db
    r = client.post("/api/users/login", json={"email": "a@x.com", "password": PASSWORD})
    assert r.status_code == 500
    body = r.json()
    assert body["error"] == "InternalError"
    assert body["message"] == "Internal server error. Please try again later."
    assert "no such table" not in r.text
    broken.dispose()


def test_metrics_exposed(client):
    client.get("/health")
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "http_request" in r.text
