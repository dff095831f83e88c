"""
RateLimiter - Sliding-window request budget per provider.

Each provider keeps the timestamps of its recent requests. A request is
allowed while fewer than ``limit`` requests fall inside the trailing window.
"""

import time
from collections import deque
from datetime import timedelta
from typing import Any, Callable

from loguru import logger


class RateLimiter:
    """
    Registry of per-provider sliding windows.

    Usage:
        limiter = RateLimiter()

        if not limiter.can_make_request("google_places", 100, timedelta(days=1)):
            raise RateLimitError("google_places")
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._windows: dict[str, deque[float]] = {}
        self._rejections: dict[str, int] = {}

    def can_make_request(self, provider: str, limit: int, window: timedelta) -> bool:
        """Record and allow the request if the provider is under its budget."""
        now = self._clock()
        timestamps = self._prune(provider, now, window)

        if len(timestamps) >= limit:
            self._rejections[provider] = self._rejections.get(provider, 0) + 1
            logger.warning(
                f"Rate limit reached for '{provider}': {limit} per "
                f"{window.total_seconds():.0f}s"
            )
            return False

        timestamps.append(now)
        return True

    def remaining(self, provider: str, limit: int, window: timedelta) -> int:
        timestamps = self._prune(provider, self._clock(), window)
        return max(0, limit - len(timestamps))

    def retry_after(self, provider: str, window: timedelta) -> float | None:
        """Seconds until the oldest request in the window expires."""
        timestamps = self._windows.get(provider)
        if not timestamps:
            return None
        return max(0.0, timestamps[0] + window.total_seconds() - self._clock())

    def reset(self, provider: str | None = None) -> None:
        if provider is None:
            self._windows.clear()
            self._rejections.clear()
        else:
            self._windows.pop(provider, None)
            self._rejections.pop(provider, None)

    def _prune(self, provider: str, now: float, window: timedelta) -> deque[float]:
        timestamps = self._windows.setdefault(provider, deque())
        cutoff = now - window.total_seconds()
        while timestamps and timestamps[0] <= cutoff:
            timestamps.popleft()
        return timestamps

    def get_status(self) -> dict[str, dict[str, Any]]:
        return {
            provider: {
                "recent_requests": len(timestamps),
                "rejections": self._rejections.get(provider, 0),
            }
            for provider, timestamps in self._windows.items()
        }
