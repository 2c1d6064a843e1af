"""
test_health_and_middleware.py — Tests for /health and the request middleware

Covers: health payload (version, breaker state, cache backend), X-Request-ID
generation and uniqueness, security headers on success and error responses.

Called by: pytest
Depends on: conftest.py (client, app_state), leadflow/main.py
"""

from leadflow import __version__


def test_health_ok(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {
        "status": "ok",
        "version": __version__,
        "store_breaker": "closed",
        "cache_backend": "memory",
    }


def test_health_reports_open_breaker(client, app_state):
    for _ in range(app_state.breaker.fail_max):
        app_state.breaker.record_failure()
    assert client.get("/health").json()["store_breaker"] == "open"


def test_request_id_header(client):
    resp = client.get("/health")
    rid = resp.headers["X-Request-ID"]
    assert len(rid) == 8
    int(rid, 16)


def test_request_ids_are_unique(client):
    ids = {client.get("/health").headers["X-Request-ID"] for _ in range(5)}
    assert len(ids) == 5


def test_security_headers(client):
    resp = client.get("/health")
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert resp.headers["X-API-Version"] == "v1"


def test_unknown_route_carries_request_id(client):
    resp = client.get("/nope")
    assert resp.status_code == 404
    body = resp.json()
    assert body["error"] == "http_error"
    assert body["request_id"] == resp.headers["X-Request-ID"]
