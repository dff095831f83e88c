"""
ServiceClient - Unified async HTTP client for provider APIs.

Combines:
- TTLCache for response caching
- RequestDeduplicator for concurrent request collapsing
- RateLimiter for per-provider request budgets
- PriorityRequestQueue for bounded outbound concurrency
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Generic, TypeVar

import httpx
from loguru import logger

from yourstop.services.cache import TTLCache
from yourstop.services.deduplicator import RequestDeduplicator
from yourstop.services.priority_queue import PriorityRequestQueue
from yourstop.services.rate_limiter import RateLimiter
from yourstop.services.errors import (
    RateLimitError,
    RequestTimeoutError,
    ServiceError,
    ServiceUnavailableError,
)
from yourstop.settings import RateLimitRule

T = TypeVar("T")


@dataclass
class RequestResult(Generic[T]):
    """Result from a service request."""

    data: T
    from_cache: bool = False
    service_id: str | None = None


@dataclass
class ServiceConfig:
    """Configuration for a specific service."""

    service_id: str
    base_url: str
    timeout: float = 10.0
    cache_ttl: timedelta = timedelta(minutes=5)
    use_cache: bool = True
    use_dedup: bool = True
    headers: dict[str, str] | None = None
    rate_limit: RateLimitRule | None = None


class ServiceClient:
    """
    Unified HTTP client with caching, deduplication, rate limiting and
    bounded concurrency.

    Usage:
        client = ServiceClient()

        client.register_service(ServiceConfig(
            service_id="yelp",
            base_url="https://api.yelp.com/v3/businesses",
            headers={"Authorization": "Bearer ..."},
            rate_limit=RateLimitRule(limit=5000, window_seconds=86400),
        ))

        result = await client.request(
            service_id="yelp",
            url="https://api.yelp.com/v3/businesses/search",
            params={"location": "London, UK"},
        )
    """

    def __init__(
        self,
        default_timeout: float = 10.0,
        default_cache_ttl: timedelta = timedelta(minutes=5),
        cache_max_size: int = 1000,
        max_concurrent: int = 3,
        http_client: httpx.AsyncClient | None = None,
        rate_limiter: RateLimiter | None = None,
        debug: bool = False,
    ):
        self._default_timeout = default_timeout
        self._default_cache_ttl = default_cache_ttl
        self._debug = debug

        self._cache = TTLCache(
            prefix="svc_",
            max_size=cache_max_size,
            default_ttl=default_cache_ttl,
            debug=debug,
        )
        self._deduplicator = RequestDeduplicator(cache=self._cache, debug=debug)
        self._rate_limiter = rate_limiter or RateLimiter()
        self._queue = PriorityRequestQueue(max_concurrent=max_concurrent, debug=debug)

        self._services: dict[str, ServiceConfig] = {}

        # HTTP client (lazy initialization unless injected)
        self._http_client = http_client
        self._owns_http_client = http_client is None

    @property
    def cache(self) -> TTLCache:
        return self._cache

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._default_timeout),
                follow_redirects=True,
            )
        return self._http_client

    def register_service(self, config: ServiceConfig) -> None:
        """Register a service configuration."""
        self._services[config.service_id] = config
        logger.debug(f"Registered service: {config.service_id}")

    def get_service_config(self, service_id: str) -> ServiceConfig | None:
        """Get configuration for a service."""
        return self._services.get(service_id)

    async def request(
        self,
        service_id: str,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        method: str = "GET",
        json_data: Any = None,
        use_cache: bool | None = None,
        cache_ttl: timedelta | None = None,
        timeout: float | None = None,
        priority: int = 0,
    ) -> RequestResult[Any]:
        """
        Make an HTTP request with caching, dedup, rate limiting and a timeout.

        Args:
            service_id: Identifier for the service (rate limit bucket)
            url: Full URL to request
            params: Query parameters
            headers: Additional headers
            method: HTTP method (GET, POST, etc.)
            json_data: JSON body for POST/PUT requests
            use_cache: Override cache usage (default: True for GET)
            cache_ttl: Override cache TTL
            timeout: Override request timeout
            priority: Queue priority for the outbound call

        Returns:
            RequestResult with the decoded JSON body

        Raises:
            RateLimitError: If the service's request budget is exhausted
            RequestTimeoutError: If request times out
            ServiceUnavailableError: Upstream answered 5xx or could not be reached
            ServiceError: For other service errors
        """
        config = self._services.get(service_id)

        is_get = method.upper() == "GET"
        should_cache = is_get and (
            use_cache if use_cache is not None else (config.use_cache if config else True)
        )
        if cache_ttl is not None:
            ttl = cache_ttl
        else:
            ttl = config.cache_ttl if config else self._default_cache_ttl
        req_timeout = timeout or (config.timeout if config else self._default_timeout)
        use_dedup = is_get and (config.use_dedup if config else True)

        req_headers: dict[str, str] = {}
        if config and config.headers:
            req_headers.update(config.headers)
        if headers:
            req_headers.update(headers)

        cache_key = self._cache.generate_key(method.upper(), url, params=params)

        if should_cache:
            cached = self._cache.get(cache_key)
            if cached is not None:
                return RequestResult(data=cached, from_cache=True, service_id=service_id)

        async def do_request() -> Any:
            self._check_rate_limit(service_id, config)
            return await self._queue.enqueue(
                lambda: self._execute_request(
                    url=url,
                    params=params,
                    headers=req_headers,
                    method=method.upper(),
                    json_data=json_data,
                    timeout=req_timeout,
                    service_id=service_id,
                ),
                priority=priority,
            )

        if use_dedup:
            data = await self._deduplicator.dedupe(
                cache_key, do_request, use_cache=should_cache, ttl=ttl
            )
        else:
            data = await do_request()
            if should_cache and data is not None:
                self._cache.set(cache_key, data, ttl)

        return RequestResult(data=data, from_cache=False, service_id=service_id)

    def _check_rate_limit(self, service_id: str, config: ServiceConfig | None) -> None:
        if not config or not config.rate_limit:
            return
        rule = config.rate_limit
        if not self._rate_limiter.can_make_request(service_id, rule.limit, rule.window):
            raise RateLimitError(
                service_id, self._rate_limiter.retry_after(service_id, rule.window)
            )

    async def _execute_request(
        self,
        url: str,
        params: dict[str, Any] | None,
        headers: dict[str, str],
        method: str,
        json_data: Any,
        timeout: float,
        service_id: str,
    ) -> Any:
        """Execute the actual HTTP request."""
        client = self._get_http_client()

        try:
            response = await client.request(
                method=method,
                url=url,
                params=params,
                headers=headers,
                json=json_data,
                timeout=timeout,
            )
            response.raise_for_status()
            return response.json()

        except httpx.TimeoutException as e:
            raise RequestTimeoutError(service_id, timeout) from e

        except httpx.HTTPStatusError as e:
            if e.response.status_code >= 500:
                raise ServiceUnavailableError(
                    f"HTTP {e.response.status_code} from upstream", service_id=service_id
                ) from e
            raise ServiceError(
                f"HTTP {e.response.status_code}: {e.response.text[:200]}",
                service_id=service_id,
            ) from e

        except httpx.ConnectError as e:
            raise ServiceUnavailableError(str(e), service_id=service_id) from e

        except httpx.RequestError as e:
            raise ServiceError(str(e), service_id=service_id) from e

        except ValueError as e:
            raise ServiceError(f"Invalid JSON response: {e}", service_id=service_id) from e

    async def close(self) -> None:
        """Close the HTTP client and cleanup resources."""
        self._queue.clear()
        await self._deduplicator.cancel_all()

        if self._http_client and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None

        logger.debug("ServiceClient closed")

    async def __aenter__(self) -> "ServiceClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    def get_health_status(self) -> dict[str, Any]:
        """Get status of caching, dedup, queue and rate limiting."""
        return {
            "cache": self._cache.get_stats().to_dict(),
            "deduplicator": self._deduplicator.get_stats().to_dict(),
            "queue": self._queue.get_stats().to_dict(),
            "rate_limits": self._rate_limiter.get_status(),
            "services": sorted(self._services),
        }

    def clear_cache(self, pattern: str | None = None) -> int:
        """Clear cache entries, optionally matching a pattern."""
        if pattern:
            return self._cache.invalidate(pattern)
        count = len(self._cache)
        self._cache.clear()
        return count
