"""
RequestDeduplicator - Prevents duplicate concurrent requests.

When multiple callers request the same resource simultaneously,
only one actual request is made and the result is shared. Successful
results are kept in a TTLCache so later callers skip the request entirely.
"""

import asyncio
from datetime import timedelta
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger

from yourstop.services.cache import TTLCache

T = TypeVar("T")


class RequestDeduplicator:
    """
    Deduplicates concurrent async requests and caches their results.

    Usage:
        dedup = RequestDeduplicator(cache=TTLCache(prefix="availability_"))

        async def get_availability(key: str):
            return await dedup.dedupe(
                key=key,
                request_fn=lambda: fetch_availability(...),
                ttl=timedelta(minutes=5),
            )
    """

    def __init__(self, cache: TTLCache | None = None, debug: bool = False):
        self._cache = cache or TTLCache(debug=debug)
        self._in_flight: dict[str, asyncio.Task[Any]] = {}
        self._debug = debug
        self._stats = DeduplicatorStats()

    @property
    def cache(self) -> TTLCache:
        return self._cache

    async def dedupe(
        self,
        key: str,
        request_fn: Callable[[], Awaitable[T]],
        use_cache: bool = True,
        ttl: timedelta | None = None,
    ) -> T:
        """
        Execute request with deduplication.

        Args:
            key: Unique identifier for this request
            request_fn: Async function to execute if no duplicate exists
            use_cache: Serve from and populate the cache
            ttl: Cache TTL for the result (cache default if not specified)

        Returns:
            Result from request_fn (cached, fresh, or from in-flight request)
        """
        if use_cache:
            cached = self._cache.get(key)
            if cached is not None:
                self._stats.cache_hits += 1
                self._log(f"CACHED: {key[:50]}")
                return cached

        task = self._in_flight.get(key)
        if task is not None:
            self._stats.deduplicated += 1
            self._log(f"DEDUPE: Waiting for in-flight request: {key[:50]}")
        else:
            self._stats.total += 1
            self._log(f"NEW: Starting request: {key[:50]}")
            task = asyncio.create_task(
                self._execute_and_cleanup(key, request_fn, use_cache, ttl)
            )
            self._in_flight[key] = task

        # shield: one caller being cancelled must not cancel the shared request
        return await asyncio.shield(task)

    async def _execute_and_cleanup(
        self,
        key: str,
        request_fn: Callable[[], Awaitable[T]],
        use_cache: bool,
        ttl: timedelta | None,
    ) -> T:
        """Execute request, cache on success, and clean up when done."""
        try:
            result = await request_fn()
            if use_cache and result is not None:
                self._cache.set(key, result, ttl)
            return result
        except Exception as e:
            self._stats.failed += 1
            self._log(f"FAILED: {key[:50]}: {e}")
            raise
        finally:
            # a cancelled task must not drop the entry of its replacement
            if self._in_flight.get(key) is asyncio.current_task():
                del self._in_flight[key]
            self._log(f"DONE: Request completed: {key[:50]}")

    def cancel(self, key: str) -> bool:
        """Cancel an in-flight request."""
        task = self._in_flight.pop(key, None)
        if task is None:
            return False
        task.cancel()
        self._log(f"CANCEL: Request cancelled: {key[:50]}")
        return True

    async def cancel_all(self) -> int:
        """Cancel all in-flight requests and wait for them to unwind."""
        tasks = list(self._in_flight.values())
        self._in_flight.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            self._log(f"CANCEL_ALL: {len(tasks)} requests cancelled")
        return len(tasks)

    def get_in_flight_count(self) -> int:
        """Get number of in-flight requests."""
        return len(self._in_flight)

    def get_in_flight_keys(self) -> list[str]:
        """Get keys of all in-flight requests."""
        return list(self._in_flight.keys())

    def get_stats(self) -> "DeduplicatorStats":
        """Get deduplication statistics."""
        self._stats.in_flight = len(self._in_flight)
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[Deduplicator] {message}")


class DeduplicatorStats:
    """Statistics for request deduplication."""

    def __init__(self):
        self.total: int = 0  # Producer executions started
        self.deduplicated: int = 0  # Callers that joined an in-flight request
        self.cache_hits: int = 0  # Callers served from cache
        self.failed: int = 0  # Producer executions that raised
        self.in_flight: int = 0

    @property
    def dedup_rate(self) -> float:
        """Share of callers that did not trigger a new execution."""
        total = self.total + self.deduplicated + self.cache_hits
        if total == 0:
            return 0.0
        return (self.deduplicated + self.cache_hits) / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_requests": self.total,
            "deduplicated": self.deduplicated,
            "cache_hits": self.cache_hits,
            "failed": self.failed,
            "in_flight": self.in_flight,
            "dedup_rate": f"{self.dedup_rate:.2%}",
        }
