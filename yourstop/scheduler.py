"""
Cache sweeper - periodically drops expired entries from registered caches.
"""

from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from yourstop.services.cache import TTLCache


class CacheSweeper:
    """
    Runs ``cleanup_expired`` on every registered cache at a fixed interval.

    Reads already evict lazily; the sweep keeps memory bounded for keys that
    are never read again.
    """

    JOB_ID = "cache_sweep"

    def __init__(self, interval_minutes: int = 10):
        self.scheduler = AsyncIOScheduler()
        self._interval_minutes = interval_minutes
        self._caches: dict[str, TTLCache] = {}
        self._is_running = False

    def register(self, name: str, cache: TTLCache) -> None:
        self._caches[name] = cache

    def sweep_now(self) -> dict[str, int]:
        """Sweep all caches immediately; returns removed entries per cache."""
        removed = {name: cache.cleanup_expired() for name, cache in self._caches.items()}
        total = sum(removed.values())
        if total:
            logger.info(f"Cache sweep removed {total} expired entries: {removed}")
        return removed

    async def _sweep_job(self) -> None:
        try:
            self.sweep_now()
        except Exception as e:
            logger.error(f"Cache sweep failed: {e}")

    def start(self) -> None:
        """Start the sweeper; needs a running event loop."""
        if self._is_running:
            logger.warning("CacheSweeper is already running")
            return

        self.scheduler.add_job(
            self._sweep_job,
            trigger="interval",
            minutes=self._interval_minutes,
            id=self.JOB_ID,
            name="Expired Cache Sweeper",
            replace_existing=True,
        )
        self.scheduler.start()
        self._is_running = True
        logger.info(f"CacheSweeper started: every {self._interval_minutes} min")

    def stop(self) -> None:
        if not self._is_running:
            return
        self.scheduler.shutdown(wait=False)
        self._is_running = False
        logger.info("CacheSweeper stopped")

    def is_running(self) -> bool:
        return self._is_running

    def get_status(self) -> dict[str, Any]:
        next_run = None
        if self._is_running:
            job = self.scheduler.get_job(self.JOB_ID)
            if job and job.next_run_time:
                next_run = job.next_run_time.isoformat()
        return {
            "running": self._is_running,
            "interval_minutes": self._interval_minutes,
            "caches": sorted(self._caches),
            "next_run": next_run,
        }
