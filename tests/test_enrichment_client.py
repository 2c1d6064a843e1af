"""
test_enrichment_client.py — Tests for leadflow/services/enrichment_client.py

Covers: cache hit skips the broker, miss calls and stores, tampered cache
entry forces a fresh broker call, broker errors propagate uncached.

Called by: pytest
Depends on: leadflow/services/enrichment_client.py, leadflow/cache/response_cache.py
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from leadflow.cache.response_cache import ResponseCache, make_key
from leadflow.errors import NotFoundError
from leadflow.services.enrichment_client import EnrichmentClient


def _run(coro):
    """Run an async coroutine synchronously in a fresh event loop."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@pytest.fixture()
def fake_broker():
    b = MagicMock()
    b.fetch = AsyncMock(return_value={"DadosBasicos": {"nome": "Maria"}})
    return b


def test_miss_then_hit(fake_broker):
    client = EnrichmentClient(fake_broker, ResponseCache())
    first = _run(client.fetch_profile("123"))
    second = _run(client.fetch_profile("123"))
    assert first == second == {"DadosBasicos": {"nome": "Maria"}}
    assert fake_broker.fetch.await_count == 1


def test_tampered_entry_refetched(fake_broker):
    cache = ResponseCache()
    client = EnrichmentClient(fake_broker, cache)
    _run(client.fetch_profile("123"))

    cache._memory.get(make_key(("broker_profile", "123")))["checksum"] = "bad"
    result = _run(client.fetch_profile("123"))

    assert result == {"DadosBasicos": {"nome": "Maria"}}
    assert fake_broker.fetch.await_count == 2
    assert cache.get(("broker_profile", "123")) == result


def test_broker_not_found_not_cached(fake_broker):
    fake_broker.fetch = AsyncMock(side_effect=NotFoundError("no record"))
    cache = ResponseCache()
    client = EnrichmentClient(fake_broker, cache)
    with pytest.raises(NotFoundError):
        _run(client.fetch_profile("123"))
    assert cache.get(("broker_profile", "123")) is None
