"""
tests/test_rate_limiting.py — Tests for rate limiting behavior

Covers: slowapi limiter configuration, storage resolution (Redis vs
in-memory), per-IP limiting on the webhook, and the 429 error shape.

Called by: pytest
Depends on: leadflow.rate_limit, routers/webhooks.py
"""

from unittest.mock import MagicMock, patch

import pytest

from leadflow.config import settings
from leadflow.rate_limit import _resolve_storage, limiter


def test_limiter_uses_remote_address():
    """Key function is get_remote_address (IP-based limiting)."""
    from slowapi.util import get_remote_address

    assert limiter._key_func is get_remote_address


def test_rate_limit_disabled_in_test_mode():
    assert limiter.enabled is False


def test_resolve_storage_memory_in_tests():
    assert _resolve_storage() == "memory://"


def test_resolve_storage_no_redis(monkeypatch):
    """Without CACHE_BACKEND=redis the limiter stays in-process."""
    monkeypatch.delenv("TESTING", raising=False)
    with patch("leadflow.rate_limit.settings") as mock_settings:
        mock_settings.cache_backend = "memory"
        mock_settings.redis_url = "redis://localhost:6379/0"
        assert _resolve_storage() == "memory://"


def test_resolve_storage_uses_redis_when_reachable(monkeypatch):
    monkeypatch.delenv("TESTING", raising=False)
    fake = MagicMock()
    with patch("leadflow.rate_limit.settings") as mock_settings, patch("redis.from_url", return_value=fake):
        mock_settings.cache_backend = "redis"
        mock_settings.redis_url = "redis://cache:6379/0"
        assert _resolve_storage() == "redis://cache:6379/0"
    fake.ping.assert_called_once()


def test_resolve_storage_redis_down_falls_back(monkeypatch):
    monkeypatch.delenv("TESTING", raising=False)
    fake = MagicMock()
    fake.ping.side_effect = ConnectionError("refused")
    with patch("leadflow.rate_limit.settings") as mock_settings, patch("redis.from_url", return_value=fake):
        mock_settings.cache_backend = "redis"
        mock_settings.redis_url = "redis://cache:6379/0"
        assert _resolve_storage() == "memory://"


@pytest.fixture()
def strict_limit(monkeypatch):
    monkeypatch.setattr(limiter, "enabled", True)
    monkeypatch.setattr(settings, "rate_limit_webhook", "2/minute")
    limiter.reset()
    yield
    limiter.reset()


def test_webhook_rate_limited(client, strict_limit):
    """Third request inside the window is 429 in the ErrorResponse shape."""
    for i in range(2):
        resp = client.post(
            "/api/v1/webhooks/crm",
            json={"id": f"L{i}", "attributes": {"updated_at": "2025-01-01T00:00:00Z"}},
        )
        assert resp.status_code == 200

    resp = client.post(
        "/api/v1/webhooks/crm",
        json={"id": "L9", "attributes": {"updated_at": "2025-01-01T00:00:00Z"}},
    )
    assert resp.status_code == 429
    body = resp.json()
    assert body["error"] == "rate_limited"
    assert "X-Request-ID" in resp.headers
