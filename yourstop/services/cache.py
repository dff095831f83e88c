"""
TTLCache - In-memory key/value cache with per-entry TTL.

Features:
- Entry is valid iff ``now - timestamp < ttl``
- Expired entries are evicted lazily when their key is read
- Optional periodic sweep via ``cleanup_expired`` (see scheduler)
- Capacity bound with least-recently-used eviction
"""

import hashlib
import time
from collections import OrderedDict
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Generic, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A single cache entry with metadata."""

    data: T
    timestamp: float
    ttl: timedelta

    def is_expired(self, now: float) -> bool:
        return now - self.timestamp >= self.ttl.total_seconds()


class TTLCache:
    """
    TTL cache shared by the aggregation services.

    Operations never suspend, so a cache instance can be shared by coroutines
    on one event loop without locking.

    Usage:
        cache = TTLCache(prefix="reviews_", max_size=500)

        cached = cache.get("reviews_abc")
        if cached is not None:
            return cached

        data = await fetch_reviews()
        cache.set("reviews_abc", data, ttl=timedelta(hours=24))
    """

    def __init__(
        self,
        prefix: str = "",
        max_size: int | None = 1000,
        default_ttl: timedelta = timedelta(minutes=5),
        clock: Callable[[], float] = time.monotonic,
        debug: bool = False,
    ):
        self._memory: OrderedDict[str, CacheEntry[Any]] = OrderedDict()
        self._prefix = prefix
        self._max_size = max_size
        self._default_ttl = default_ttl
        self._clock = clock
        self._debug = debug
        self._stats = CacheStats()

    def generate_key(self, *parts: Any, params: dict[str, Any] | None = None) -> str:
        """Generate a stable cache key from positional parts and params."""
        full_key = "_".join(str(p) for p in parts)
        if params:
            sorted_params = "&".join(
                f"{k}={v}" for k, v in sorted(params.items()) if v is not None
            )
            full_key = f"{full_key}?{sorted_params}"

        # Hash long keys
        if len(full_key) > 200:
            hash_val = hashlib.md5(full_key.encode()).hexdigest()[:16]
            return f"{self._prefix}{hash_val}"

        return f"{self._prefix}{full_key}"

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if missing or expired."""
        entry = self._memory.get(key)
        if entry is None:
            self._stats.misses += 1
            self._log(f"MISS: {key[:50]}")
            return None

        if entry.is_expired(self._clock()):
            del self._memory[key]
            self._stats.misses += 1
            self._stats.expirations += 1
            self._log(f"EXPIRED: {key[:50]}")
            return None

        self._memory.move_to_end(key)
        self._stats.hits += 1
        self._log(f"HIT: {key[:50]}")
        return entry.data

    def set(self, key: str, data: Any, ttl: timedelta | None = None) -> None:
        """
        Store a value, overwriting any existing entry.

        Args:
            key: Cache key
            data: Data to cache
            ttl: Time to live (uses default if not specified)
        """
        ttl = ttl if ttl is not None else self._default_ttl

        if key in self._memory:
            del self._memory[key]
        elif self._max_size is not None and len(self._memory) >= self._max_size:
            self._evict_oldest()

        self._memory[key] = CacheEntry(data=data, timestamp=self._clock(), ttl=ttl)
        self._log(f"SET: {key[:50]} (TTL: {ttl.total_seconds()}s)")

    def has(self, key: str) -> bool:
        entry = self._memory.get(key)
        return entry is not None and not entry.is_expired(self._clock())

    def clear_entry(self, key: str) -> bool:
        """Delete a specific key from cache."""
        if key in self._memory:
            del self._memory[key]
            self._log(f"DELETE: {key[:50]}")
            return True
        return False

    def invalidate(self, pattern: str) -> int:
        """
        Invalidate all keys containing ``pattern``.

        Returns:
            Number of entries invalidated
        """
        keys_to_delete = [k for k in self._memory if pattern in k]
        for key in keys_to_delete:
            del self._memory[key]

        if keys_to_delete:
            self._log(f"INVALIDATE: {len(keys_to_delete)} entries matching '{pattern}'")

        return len(keys_to_delete)

    def clear(self) -> None:
        """Clear all cache entries."""
        count = len(self._memory)
        self._memory.clear()
        self._log(f"CLEAR: {count} entries removed")

    def cleanup_expired(self) -> int:
        """Remove all expired entries. Returns count of removed entries."""
        now = self._clock()
        expired_keys = [k for k, v in self._memory.items() if v.is_expired(now)]
        for key in expired_keys:
            del self._memory[key]

        if expired_keys:
            self._stats.expirations += len(expired_keys)
            self._log(f"CLEANUP: {len(expired_keys)} expired entries removed")

        return len(expired_keys)

    def _evict_oldest(self) -> None:
        """Evict the least recently used entry."""
        if not self._memory:
            return

        oldest_key, _ = self._memory.popitem(last=False)
        self._stats.evictions += 1
        self._log(f"EVICT: {oldest_key[:50]}")

    def __len__(self) -> int:
        return len(self._memory)

    def get_stats(self) -> "CacheStats":
        """Get cache statistics."""
        self._stats.size = len(self._memory)
        self._stats.max_size = self._max_size or 0
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[TTLCache{':' + self._prefix if self._prefix else ''}] {message}")


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    expirations: int = 0
    evictions: int = 0
    size: int = 0
    max_size: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "expirations": self.expirations,
            "evictions": self.evictions,
            "size": self.size,
            "max_size": self.max_size,
            "hit_rate": f"{self.hit_rate:.2%}",
        }
