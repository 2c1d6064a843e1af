"""Recency suppressor — skip re-enriching a national ID processed moments ago.

A performance guard only: a miss costs one redundant broker call and an
idempotent store write, never wrong data. Two concurrent events for the same
ID may both pass the gate before either records it; that is accepted.

Usage:
    recency = RecencySuppressor(cooldown_seconds=60, ttl_seconds=300)
    if not recency.should_suppress(cpf):
        ...enrich...
        recency.record(cpf)

Owned by AppState: created in the app lifespan, cleared on shutdown.
"""

import time
from typing import Callable

from loguru import logger

from .ttl_cache import TTLCache


class RecencySuppressor:
    def __init__(
        self,
        cooldown_seconds: float = 60,
        ttl_seconds: float = 300,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.time,
    ):
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._entries = TTLCache(ttl_seconds, max_entries, clock=clock)

    def last_enriched_at(self, national_id: str) -> float | None:
        return self._entries.get(national_id)

    def should_suppress(self, national_id: str) -> bool:
        last = self._entries.get(national_id)
        if last is None:
            return False
        elapsed = self._clock() - last
        if elapsed < self.cooldown_seconds:
            logger.info(
                "Skipping {} — enriched {:.0f}s ago (cooldown {}s)",
                national_id,
                elapsed,
                self.cooldown_seconds,
            )
            return True
        return False

    def record(self, national_id: str) -> None:
        """Call only after a successful enrichment."""
        self._entries.set(national_id, self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
