"""In-process TTL cache, capacity-bounded, safe to share across tasks and threads.

Each get/set/delete is atomic under one lock. Expired entries are dropped
lazily on read and eagerly when the cache is full; when still full, the
oldest inserted entry is evicted.
"""

import threading
import time
from collections import OrderedDict
from typing import Any, Callable


class TTLCache:
    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._data: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            expires_at, value = item
            if self._clock() >= expires_at:
                del self._data[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._data.pop(key, None)
            if len(self._data) >= self.max_entries:
                self._purge_expired_locked()
            while len(self._data) >= self.max_entries:
                self._data.popitem(last=False)
            self._data[key] = (self._clock() + ttl, value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired_locked()
            return len(self._data)

    def _purge_expired_locked(self) -> None:
        now = self._clock()
        for key in [k for k, (exp, _) in self._data.items() if now >= exp]:
            del self._data[key]
