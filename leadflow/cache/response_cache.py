"""Broker response cache with integrity check — Redis primary, in-process fallback.

Every entry is stored as {"data": <canonical JSON text>, "checksum": sha256(data)}.
On read the checksum is recomputed; a mismatch (corruption or poisoning) is
logged, the entry is evicted and the read is a miss. A checksum supplied by a
caller is never trusted: set() always computes it fresh.

Redis is used when CACHE_BACKEND=redis and the server answers a ping at
startup. A Redis error afterwards degrades to a miss, never an exception.

Usage:
    cache = ResponseCache(ttl_seconds=6 * 3600)
    cache.set(("broker_profile", cpf), payload)
    payload = cache.get(("broker_profile", cpf))
"""

import hashlib
import json
import os
from typing import Any

from loguru import logger

from .ttl_cache import TTLCache

_REDIS_PREFIX = "leadflow:resp:"


def make_key(key: tuple | str) -> str:
    if isinstance(key, tuple):
        return ":".join(str(part) for part in key)
    return str(key)


def checksum(data: str) -> str:
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def serialize(value: Any) -> str:
    return json.dumps(value, sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def connect_redis(redis_url: str):
    """Return a connected redis client, or None when unavailable."""
    if os.environ.get("TESTING") or not redis_url:
        return None
    try:
        import redis

        client = redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=3,
            socket_timeout=2,
            retry_on_timeout=True,
        )
        client.ping()
        logger.info("Response cache connected to Redis")
        return client
    except Exception as e:
        logger.warning("Redis unavailable, response cache falls back to memory: {}", e)
        return None


class ResponseCache:
    def __init__(self, ttl_seconds: float = 6 * 3600, max_entries: int = 100_000, redis_client=None):
        self.ttl_seconds = ttl_seconds
        self._redis = redis_client
        self._memory = TTLCache(ttl_seconds, max_entries)

    @property
    def backend(self) -> str:
        return "redis" if self._redis is not None else "memory"

    def get(self, key: tuple | str) -> Any | None:
        k = make_key(key)
        entry = self._read(k)
        if entry is None:
            return None
        try:
            if not isinstance(entry, dict):
                raise ValueError("entry is not an object")
            data = entry["data"]
            if checksum(data) != entry["checksum"]:
                raise ValueError("checksum mismatch")
            return json.loads(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(
                "Cache integrity failure for {} ({}) — possible corruption or poisoning, evicting",
                k,
                e,
            )
            self.delete(key)
            return None

    def set(self, key: tuple | str, value: Any) -> None:
        data = serialize(value)
        self._write(make_key(key), {"data": data, "checksum": checksum(data)})

    def delete(self, key: tuple | str) -> None:
        k = make_key(key)
        self._memory.delete(k)
        if self._redis is not None:
            try:
                self._redis.delete(f"{_REDIS_PREFIX}{k}")
            except Exception as e:
                logger.debug("Redis delete error for {}: {}", k, e)

    def clear(self) -> None:
        self._memory.clear()

    def _read(self, k: str) -> Any | None:
        if self._redis is None:
            return self._memory.get(k)
        try:
            raw = self._redis.get(f"{_REDIS_PREFIX}{k}")
        except Exception as e:
            logger.warning("Redis read error for {}: {}", k, e)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return raw

    def _write(self, k: str, entry: dict) -> None:
        if self._redis is None:
            self._memory.set(k, entry)
            return
        try:
            self._redis.setex(f"{_REDIS_PREFIX}{k}", int(self.ttl_seconds), json.dumps(entry))
        except Exception as e:
            logger.warning("Redis write error for {}: {}", k, e)
