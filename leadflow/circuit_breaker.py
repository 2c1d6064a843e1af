"""Circuit breaker for canonical-store access.

closed → open after fail_max consecutive failures; open → half_open once
reset_timeout seconds have elapsed; a success closes it again, a failure in
half_open re-opens it. While open, call() fails fast without running the
wrapped function.
"""

import threading
import time

from loguru import logger

from .errors import CircuitOpenError


class CircuitBreaker:
    def __init__(
        self,
        name: str,
        fail_max: int = 5,
        reset_timeout: float = 60,
        failure_types: tuple[type[BaseException], ...] = (Exception,),
    ):
        self.name = name
        self.failure_types = failure_types
        self.fail_max = fail_max
        self.reset_timeout = reset_timeout
        self._fail_count = 0
        self._opened_at: float | None = None
        self._lock = threading.Lock()

    @property
    def current_state(self) -> str:
        with self._lock:
            return self._state_locked()

    def _state_locked(self) -> str:
        if self._opened_at is None:
            return "closed"
        if time.monotonic() - self._opened_at >= self.reset_timeout:
            return "half_open"
        return "open"

    def record_success(self) -> None:
        with self._lock:
            if self._opened_at is not None:
                logger.info("Circuit {} closed after successful probe", self.name)
            self._fail_count = 0
            self._opened_at = None

    def record_failure(self) -> None:
        with self._lock:
            state = self._state_locked()
            self._fail_count += 1
            if state == "half_open" or self._fail_count >= self.fail_max:
                if state != "open":
                    logger.warning(
                        "Circuit {} opened after {} consecutive failures",
                        self.name,
                        self._fail_count,
                    )
                self._opened_at = time.monotonic()

    def call(self, fn, *args, **kwargs):
        """Run fn through the breaker. Only failure_types exceptions count against it."""
        if self.current_state == "open":
            raise CircuitOpenError(self.name)
        try:
            result = fn(*args, **kwargs)
        except self.failure_types:
            self.record_failure()
            raise
        self.record_success()
        return result
