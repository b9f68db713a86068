"""Background retention queue for the message store.

Appends never run cleanup themselves. They schedule the session here and a
single worker task drains the queue, one session at a time. The queue is
bounded: when it is full the request is dropped and counted, and the next
append for that session schedules it again.
"""

import asyncio
import contextlib
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from ..shared.logger import log_debug, log_error, log_warning

CleanupFn = Callable[[str], Awaitable[Any]]


class RetentionWorker:
    """Runs per-session retention cleanup off the append path."""

    def __init__(self, cleanup: CleanupFn, max_queue_size: int = 1000):
        self._cleanup = cleanup
        self._queue: "asyncio.Queue[str]" = asyncio.Queue(maxsize=max_queue_size)
        self._pending: Set[str] = set()
        self._task: Optional[asyncio.Task] = None
        self.stats: Dict[str, int] = {
            "scheduled": 0,
            "coalesced": 0,
            "dropped": 0,
            "completed": 0,
            "failed": 0,
        }

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def queue_depth(self) -> int:
        return self._queue.qsize()

    def schedule(self, session_id: str) -> bool:
        """Queue a cleanup for ``session_id`` without waiting.

        Returns:
            False if the queue was full and the request was dropped
        """
        if session_id in self._pending:
            self.stats["coalesced"] += 1
            return True
        try:
            self._queue.put_nowait(session_id)
        except asyncio.QueueFull:
            self.stats["dropped"] += 1
            log_warning("Retention queue full, dropping cleanup request",
                        component="retention", session_id=session_id, queue_size=self._queue.maxsize)
            return False
        self._pending.add(session_id)
        self.stats["scheduled"] += 1
        return True

    async def start(self):
        if self._task is None:
            self._task = asyncio.create_task(self._run())
            log_debug("Started retention worker", component="retention")

    async def stop(self):
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
            log_debug("Stopped retention worker", component="retention")

    async def join(self):
        """Wait until every queued cleanup has finished."""
        await self._queue.join()

    async def _run(self):
        while True:
            session_id = await self._queue.get()
            self._pending.discard(session_id)
            try:
                await self._cleanup(session_id)
                self.stats["completed"] += 1
            except Exception as e:
                self.stats["failed"] += 1
                log_error("Retention cleanup failed", component="retention", error=e, session_id=session_id)
            finally:
                self._queue.task_done()
