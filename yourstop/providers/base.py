"""
Base provider interface and capability protocols.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol, runtime_checkable

from dateutil import parser as date_parser

from yourstop.models import (
    AvailabilityFilters,
    BookingRequest,
    BookingResponse,
    MenuData,
    RealTimeAvailability,
    RestaurantData,
    RestaurantSearchFilters,
    ReviewData,
)
from yourstop.services.client import ServiceClient, ServiceConfig
from yourstop.settings import PROVIDER_KEY_NAMES, Settings


def parse_timestamp(value: str) -> datetime:
    """Parse a provider timestamp; naive values are taken as UTC."""
    parsed = date_parser.parse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class BaseProvider(ABC):
    """
    Abstract base class for all upstream restaurant providers.

    All providers should:
    - Use ServiceClient for HTTP requests (caching, dedup, rate limits, timeouts)
    - Return the shared Pydantic value objects
    - Catch their own failures and return None ("provider unavailable")
    """

    def __init__(self, client: ServiceClient, settings: Settings):
        self.client = client
        self.settings = settings
        self.client.register_service(self.service_config())

    @property
    @abstractmethod
    def service_id(self) -> str:
        """Unique identifier for this provider."""
        ...

    @property
    def key_name(self) -> str:
        return PROVIDER_KEY_NAMES[self.service_id]

    @property
    def api_key(self) -> str:
        return self.settings.get_api_key(self.key_name)

    @property
    def base_url(self) -> str:
        return getattr(self.settings, f"{self.service_id}_base_url").rstrip("/")

    def is_configured(self) -> bool:
        """Provider is attempted only when its API key is configured."""
        return self.settings.is_api_key_configured(self.key_name)

    def auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def service_config(self) -> ServiceConfig:
        return ServiceConfig(
            service_id=self.service_id,
            base_url=self.base_url,
            timeout=self.settings.request_timeout,
            headers=self.auth_headers(),
            rate_limit=self.settings.rate_limits.get(self.service_id),
        )

    async def _get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        cache_ttl: timedelta | None = None,
        priority: int = 0,
    ) -> Any:
        result = await self.client.request(
            service_id=self.service_id,
            url=f"{self.base_url}{path}",
            params=params,
            cache_ttl=cache_ttl,
            priority=priority,
        )
        return result.data

    async def _post(self, path: str, json_data: Any, priority: int = 0) -> Any:
        result = await self.client.request(
            service_id=self.service_id,
            url=f"{self.base_url}{path}",
            method="POST",
            json_data=json_data,
            priority=priority,
        )
        return result.data


@runtime_checkable
class SearchProvider(Protocol):
    service_id: str

    def is_configured(self) -> bool: ...

    async def search_restaurants(
        self, filters: RestaurantSearchFilters | None = None
    ) -> list[RestaurantData] | None: ...


@runtime_checkable
class ReviewProvider(Protocol):
    service_id: str

    def is_configured(self) -> bool: ...

    async def fetch_reviews(self, restaurant_id: str) -> list[ReviewData] | None: ...


@runtime_checkable
class AvailabilityProvider(Protocol):
    service_id: str

    def is_configured(self) -> bool: ...

    async def fetch_availability(
        self, restaurant_id: str, filters: AvailabilityFilters
    ) -> RealTimeAvailability | None: ...

    async def book(self, request: BookingRequest) -> BookingResponse | None: ...


@runtime_checkable
class MenuProvider(Protocol):
    service_id: str

    def is_configured(self) -> bool: ...

    async def fetch_menu(self, restaurant_id: str) -> MenuData | None: ...
