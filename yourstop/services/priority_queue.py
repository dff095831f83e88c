"""
PriorityRequestQueue - Bounded-concurrency executor, highest priority first.

Waiting requests are ordered by descending priority; equal priorities keep
arrival order. At most ``max_concurrent`` requests run at once.
"""

import asyncio
import heapq
import itertools
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass(order=True)
class PendingRequest:
    """Heap entry: sorts by (-priority, sequence)."""

    sort_key: tuple[int, int]
    request_fn: Callable[[], Awaitable[Any]] = field(compare=False)
    future: asyncio.Future[Any] = field(compare=False)
    priority: int = field(compare=False, default=0)


class PriorityRequestQueue:
    """
    Runs request functions with bounded concurrency.

    Usage:
        queue = PriorityRequestQueue(max_concurrent=3)

        data = await queue.enqueue(lambda: client.get(url), priority=5)
    """

    def __init__(self, max_concurrent: int = 3, debug: bool = False):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        self._max_concurrent = max_concurrent
        self._debug = debug
        self._queue: list[PendingRequest] = []
        self._sequence = itertools.count()
        self._active = 0
        self._running: set[asyncio.Task[None]] = set()
        self._stats = QueueStats()

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    @property
    def active_count(self) -> int:
        return self._active

    @property
    def pending_count(self) -> int:
        return len(self._queue)

    def enqueue(
        self, request_fn: Callable[[], Awaitable[T]], priority: int = 0
    ) -> asyncio.Future[T]:
        """
        Queue a request function.

        Args:
            request_fn: Zero-argument coroutine function to run
            priority: Higher values are dispatched first

        Returns:
            Future settled with the request's result or exception
        """
        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        heapq.heappush(
            self._queue,
            PendingRequest(
                sort_key=(-priority, next(self._sequence)),
                request_fn=request_fn,
                future=future,
                priority=priority,
            ),
        )
        self._stats.enqueued += 1
        self._log(f"ENQUEUE: priority={priority} ({len(self._queue)} waiting)")
        self._pump()
        return future

    def _pump(self) -> None:
        while self._active < self._max_concurrent and self._queue:
            item = heapq.heappop(self._queue)
            if item.future.done():
                # Caller gave up while waiting
                continue

            self._active += 1
            self._stats.peak_active = max(self._stats.peak_active, self._active)
            self._log(f"START: priority={item.priority} (active={self._active})")

            task = asyncio.get_running_loop().create_task(self._run(item))
            self._running.add(task)
            task.add_done_callback(self._running.discard)

    async def _run(self, item: PendingRequest) -> None:
        try:
            result = await item.request_fn()
        except asyncio.CancelledError:
            if not item.future.done():
                item.future.cancel()
            raise
        except Exception as e:
            self._stats.failed += 1
            if not item.future.done():
                item.future.set_exception(e)
        else:
            self._stats.completed += 1
            if not item.future.done():
                item.future.set_result(result)
        finally:
            self._active -= 1
            self._pump()

    def clear(self) -> int:
        """Cancel every waiting (not yet started) request."""
        cleared = 0
        while self._queue:
            item = heapq.heappop(self._queue)
            if not item.future.done():
                item.future.cancel()
                cleared += 1
        if cleared:
            self._log(f"CLEAR: {cleared} waiting requests cancelled")
        return cleared

    async def join(self) -> None:
        """Wait until nothing is waiting or running."""
        while self._running or self._queue:
            if self._running:
                await asyncio.gather(*list(self._running), return_exceptions=True)
            else:
                await asyncio.sleep(0)

    def get_stats(self) -> "QueueStats":
        self._stats.active = self._active
        self._stats.pending = len(self._queue)
        self._stats.max_concurrent = self._max_concurrent
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[PriorityQueue] {message}")


@dataclass
class QueueStats:
    """Queue statistics."""

    enqueued: int = 0
    completed: int = 0
    failed: int = 0
    active: int = 0
    pending: int = 0
    peak_active: int = 0
    max_concurrent: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "enqueued": self.enqueued,
            "completed": self.completed,
            "failed": self.failed,
            "active": self.active,
            "pending": self.pending,
            "peak_active": self.peak_active,
            "max_concurrent": self.max_concurrent,
        }
