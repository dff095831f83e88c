"""
Service layer infrastructure - request handling patterns for upstream API calls.

Provides:
- TTLCache: In-memory TTL cache with LRU capacity bound
- RequestDeduplicator: Prevents duplicate concurrent requests
- RequestBatcher: Groups requests into single batch-endpoint calls
- PriorityRequestQueue: Bounded-concurrency, priority-ordered execution
- RateLimiter: Sliding-window request budgets per provider
- ServiceClient: Unified client combining all patterns

The aggregators (availability, reviews, restaurants) live in their own
modules and are imported from there.
"""

from yourstop.services.errors import (
    ServiceError,
    RequestTimeoutError,
    RateLimitError,
    ServiceUnavailableError,
    BatchTransportError,
    BatchItemError,
)
from yourstop.services.cache import TTLCache, CacheEntry, CacheStats
from yourstop.services.deduplicator import RequestDeduplicator
from yourstop.services.batching import BatchRequestOptions, RequestBatcher
from yourstop.services.priority_queue import PriorityRequestQueue
from yourstop.services.rate_limiter import RateLimiter
from yourstop.services.client import ServiceClient, ServiceConfig, RequestResult

__all__ = [
    # Errors
    "ServiceError",
    "RequestTimeoutError",
    "RateLimitError",
    "ServiceUnavailableError",
    "BatchTransportError",
    "BatchItemError",
    # Cache
    "TTLCache",
    "CacheEntry",
    "CacheStats",
    # Deduplicator
    "RequestDeduplicator",
    # Batching
    "BatchRequestOptions",
    "RequestBatcher",
    # Priority queue
    "PriorityRequestQueue",
    # Rate limiting
    "RateLimiter",
    # Client
    "ServiceClient",
    "ServiceConfig",
    "RequestResult",
]
