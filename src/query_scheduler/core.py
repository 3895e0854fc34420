"""
Debounced Query Scheduler

Coalesces rapid keystroke-driven queries into one downstream execution per
logical input (key) after a quiet period. Every scheduled request carries a
monotonically increasing sequence number so a late response can be dropped
once a newer request for the same key has started.

Runs on the asyncio event loop; no locking is needed.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

from common.config import SEARCH_DEBOUNCE_MS
from common.logging_config import get_logger
from common.metrics import scheduler_executions, stale_responses

logger = get_logger("query_scheduler")


@dataclass(frozen=True)
class ScheduledQuery:
    """One debounced request as handed to the executor."""

    key: str
    query: str
    sequence: int


Executor = Callable[[ScheduledQuery], Awaitable[None]]


class DebouncedQueryScheduler:
    """Per-key debounce with stale-response guarding."""

    def __init__(self, execute: Executor, delay_ms: int = SEARCH_DEBOUNCE_MS):
        self._execute = execute
        self.delay_ms = delay_ms
        self._sequence = 0
        self._latest: dict[str, int] = {}
        self._pending: dict[str, asyncio.Task] = {}
        self._in_flight: dict[str, set[asyncio.Task]] = {}

    def schedule(self, key: str, query: str, delay_ms: int | None = None) -> ScheduledQuery:
        """
        Schedule `query` for `key`, replacing any request still waiting out its delay.

        Must be called from within a running event loop.
        """
        delay_ms = self.delay_ms if delay_ms is None else delay_ms

        waiting = self._pending.pop(key, None)
        if waiting is not None:
            waiting.cancel()

        self._sequence += 1
        request = ScheduledQuery(key=key, query=query, sequence=self._sequence)
        self._latest[key] = request.sequence

        task = asyncio.get_running_loop().create_task(self._run_after(request, delay_ms / 1000))
        self._pending[key] = task
        return request

    async def _run_after(self, request: ScheduledQuery, delay_s: float) -> None:
        await asyncio.sleep(delay_s)

        # Quiet period elapsed: the request is now in flight
        task = asyncio.current_task()
        if self._pending.get(request.key) is task:
            del self._pending[request.key]
        self._in_flight.setdefault(request.key, set()).add(task)

        scheduler_executions.add(1, attributes={"key": request.key})
        try:
            await self._execute(request)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(f"Debounced execution failed for '{request.key}' (#{request.sequence})")
        finally:
            self._in_flight.get(request.key, set()).discard(task)

    def is_current(self, request: ScheduledQuery) -> bool:
        """True while no newer request for the same key exists and the key was not cancelled."""
        return self._latest.get(request.key) == request.sequence

    def accept(self, request: ScheduledQuery) -> bool:
        """Like is_current, but counts and logs a discarded stale response."""
        if self.is_current(request):
            return True
        stale_responses.add(1, attributes={"key": request.key})
        logger.debug(f"Discarding stale response for '{request.key}' (#{request.sequence})")
        return False

    def has_pending(self, key: str) -> bool:
        return key in self._pending or bool(self._in_flight.get(key))

    def cancel(self, key: str) -> None:
        """Drop the waiting and in-flight requests for `key`; their results become stale."""
        self._latest.pop(key, None)
        waiting = self._pending.pop(key, None)
        if waiting is not None:
            waiting.cancel()
        for task in self._in_flight.pop(key, set()):
            task.cancel()

    def cancel_all(self) -> None:
        for key in list(self._latest) + list(self._pending) + list(self._in_flight):
            self.cancel(key)

    async def flush(self) -> None:
        """Wait until every waiting and in-flight request has finished or been cancelled."""
        while True:
            tasks = set(self._pending.values())
            for running in self._in_flight.values():
                tasks |= running
            tasks = {task for task in tasks if not task.done()}
            if not tasks:
                return
            await asyncio.wait(tasks)
