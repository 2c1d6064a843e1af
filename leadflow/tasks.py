"""Background work — per-event pipeline tasks and the housekeeping loop.

TaskSupervisor owns every spawned asyncio.Task: it keeps a strong reference
until the task finishes, names it by the event's natural key, logs crashes
that escape the pipeline, and cancels what is left on shutdown. The ledger
row, not the task, is the durable record of the work.

The scheduler loop ticks every SCHEDULER_INTERVAL_SECONDS and reports
ledger rows stuck in processing (a worker died mid-pipeline).
"""

import asyncio
from datetime import timedelta
from typing import Coroutine

from loguru import logger


class TaskSupervisor:
    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, name: str, coro: Coroutine) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Task {} cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.opt(exception=exc).error("Task {} crashed", task.get_name())

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def join(self) -> None:
        """Wait until every task (including ones spawned meanwhile) is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self, timeout: float = 10) -> None:
        if not self._tasks:
            return
        logger.info("Waiting up to {}s for {} background task(s)", timeout, len(self._tasks))
        done, still_running = await asyncio.wait(list(self._tasks), timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            logger.warning("Cancelled {} unfinished task(s) at shutdown", len(still_running))


def report_stuck_events(session_factory, older_than_minutes: int) -> int:
    """One scheduler tick: log ledger rows stuck in processing. Returns the count."""
    from .services.ledger_service import find_stuck_events

    db = session_factory()
    try:
        stuck = find_stuck_events(db, timedelta(minutes=older_than_minutes))
        for ev in stuck:
            logger.warning(
                "Event {} @ {} stuck in processing since {}",
                ev.lead_id,
                ev.occurred_at.isoformat(),
                ev.updated_at.isoformat(),
            )
        return len(stuck)
    finally:
        db.close()


async def start_scheduler(session_factory, interval_seconds: int, stuck_minutes: int):
    """Launch the housekeeping loop. Call once on app startup."""
    logger.info("Background scheduler started — stuck-event check every {}s", interval_seconds)
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            report_stuck_events(session_factory, stuck_minutes)
        except Exception as e:
            logger.error("Scheduler tick error: {}", e)
