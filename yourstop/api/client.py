"""
YourStopClient - Typed client for the YourStop API.

Reads are coalesced through a RequestBatcher into ``/api/batch`` calls;
bookings and cancellations go straight to the API through a priority queue.
"""

from typing import Any
from urllib.parse import quote, urlencode

import httpx
from loguru import logger

from yourstop.models import (
    BookingRequest,
    BookingResponse,
    BookingStatus,
    MenuData,
    RealTimeAvailability,
    RestaurantData,
    RestaurantSearchFilters,
    RestaurantSearchResult,
    ReviewResponse,
)
from yourstop.services.batching import RequestBatcher
from yourstop.services.errors import ServiceError
from yourstop.services.priority_queue import PriorityRequestQueue
from yourstop.settings import Settings

MUTATION_PRIORITY = 10


def _path(*parts: str) -> str:
    return "/" + "/".join(quote(part, safe="") for part in parts)


def _with_query(path: str, params: dict[str, Any]) -> str:
    params = {k: v for k, v in params.items() if v not in (None, [], "")}
    if not params:
        return path
    return f"{path}?{urlencode(params, doseq=True)}"


class YourStopClient:
    """
    Usage:
        async with YourStopClient.from_settings(settings) as client:
            result = await client.get_restaurants(RestaurantSearchFilters(area=["Soho"]))
    """

    def __init__(
        self,
        base_url: str,
        http_client: httpx.AsyncClient,
        batcher: RequestBatcher,
        queue: PriorityRequestQueue | None = None,
        owns_http_client: bool = False,
    ):
        self._base_url = base_url.rstrip("/")
        self._http_client = http_client
        self._batcher = batcher
        self._queue = queue or PriorityRequestQueue()
        self._owns_http_client = owns_http_client

    @classmethod
    def from_settings(
        cls, settings: Settings, http_client: httpx.AsyncClient | None = None
    ) -> "YourStopClient":
        owns = http_client is None
        http_client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.request_timeout)
        )
        batcher = RequestBatcher(
            batch_url=settings.batch_url,
            http_client=http_client,
            max_batch_size=settings.batch_max_size,
            max_wait_time=settings.batch_max_wait,
            debug=settings.debug,
        )
        queue = PriorityRequestQueue(
            max_concurrent=settings.queue_max_concurrent, debug=settings.debug
        )
        return cls(settings.api_base_url, http_client, batcher, queue, owns_http_client=owns)

    async def _read(self, endpoint: str) -> Any:
        return await self._batcher.enqueue(endpoint)

    async def get_restaurants(
        self,
        filters: RestaurantSearchFilters | None = None,
        page: int = 1,
        limit: int = 30,
    ) -> RestaurantSearchResult:
        params: dict[str, Any] = {"page": page, "limit": limit}
        if filters:
            params.update(filters.model_dump(exclude_none=True))
        data = await self._read(_with_query("/api/restaurants", params))
        return RestaurantSearchResult.model_validate(data)

    async def get_restaurant(self, restaurant_id: str) -> RestaurantData:
        data = await self._read(_path("api", "restaurants", restaurant_id))
        return RestaurantData.model_validate(data)

    async def get_availability(
        self, restaurant_id: str, date: str, party_size: int = 2
    ) -> RealTimeAvailability:
        endpoint = _with_query(
            _path("api", "restaurants", restaurant_id, "availability"),
            {"date": date, "party_size": party_size},
        )
        return RealTimeAvailability.model_validate(await self._read(endpoint))

    async def get_reviews(self, restaurant_id: str) -> ReviewResponse:
        data = await self._read(_path("api", "restaurants", restaurant_id, "reviews"))
        return ReviewResponse.model_validate(data)

    async def get_menu(self, restaurant_id: str) -> MenuData:
        data = await self._read(_path("api", "restaurants", restaurant_id, "menu"))
        return MenuData.model_validate(data)

    async def book_table(self, request: BookingRequest) -> BookingResponse:
        data = await self._queue.enqueue(
            lambda: self._send("POST", "/api/bookings", request.model_dump(mode="json")),
            priority=MUTATION_PRIORITY,
        )
        return BookingResponse.model_validate(data)

    async def cancel_booking(self, booking_id: str) -> BookingStatus:
        data = await self._queue.enqueue(
            lambda: self._send("DELETE", _path("api", "bookings", booking_id)),
            priority=MUTATION_PRIORITY,
        )
        return BookingStatus.model_validate(data)

    async def _send(self, method: str, endpoint: str, body: Any = None) -> Any:
        try:
            response = await self._http_client.request(
                method, f"{self._base_url}{endpoint}", json=body
            )
        except httpx.HTTPError as e:
            raise ServiceError(f"{method} {endpoint} failed: {e}", service_id="yourstop") from e

        if response.is_error:
            try:
                error = response.json().get("error", {})
            except ValueError:
                error = {}
            message = error.get("message") or f"HTTP {response.status_code}"
            logger.warning(f"{method} {endpoint} -> {response.status_code}: {message}")
            raise ServiceError(message, service_id="yourstop")
        return response.json()

    async def close(self) -> None:
        await self._batcher.close()
        await self._queue.join()
        if self._owns_http_client:
            await self._http_client.aclose()

    async def __aenter__(self) -> "YourStopClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
