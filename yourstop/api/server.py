"""FastAPI server exposing restaurants, availability, bookings and reviews."""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

import httpx
from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from yourstop.container import ServiceContainer
from yourstop.exceptions import AppError, ValidationError
from yourstop.models import (
    AvailabilityFilters,
    BookingRequest,
    BookingResponse,
    BookingStatus,
    DataFreshness,
    DateRange,
    MenuData,
    RealTimeAvailability,
    RestaurantData,
    RestaurantSearchFilters,
    RestaurantSearchResult,
    ReviewAnalytics,
    ReviewFilters,
    ReviewResponse,
    ReviewSummary,
    TimeRange,
)

MAX_BATCH_REQUESTS = 50
INTERNAL_BASE_URL = "http://yourstop.internal"


class BatchItem(BaseModel):
    id: str = ""
    url: str
    method: str = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None


class BatchRequest(BaseModel):
    requests: list[BatchItem]


def _error_response(status_code: int, code: str, message: str, details: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message, "details": details}},
    )


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"].get("message") or f"HTTP {response.status_code}"
    return f"HTTP {response.status_code}"


class YourStopServer:
    """HTTP surface over the service container."""

    def __init__(self, container: ServiceContainer, manage_lifecycle: bool = True):
        self.container = container
        lifespan = self._lifespan if manage_lifecycle else None
        self.app = FastAPI(title="YourStop API", lifespan=lifespan)

        self.app.add_exception_handler(AppError, self.handle_app_error)
        self.app.add_exception_handler(RequestValidationError, self.handle_validation_error)
        self.app.add_exception_handler(PydanticValidationError, self.handle_validation_error)

        # Register routes
        self.app.get("/health")(self.health_check)
        self.app.get("/api/status")(self.status)
        self.app.get("/api/freshness")(self.data_freshness)

        self.app.get("/api/restaurants")(self.list_restaurants)
        self.app.get("/api/restaurants/{restaurant_id}")(self.get_restaurant)
        self.app.get("/api/restaurants/{restaurant_id}/availability")(self.get_availability)
        self.app.get("/api/restaurants/{restaurant_id}/menu")(self.get_menu)
        self.app.get("/api/restaurants/{restaurant_id}/reviews")(self.get_reviews)
        self.app.get("/api/restaurants/{restaurant_id}/reviews/summary")(self.get_review_summary)
        self.app.get("/api/restaurants/{restaurant_id}/reviews/analytics")(
            self.get_review_analytics
        )

        self.app.post("/api/bookings")(self.create_booking)
        self.app.get("/api/bookings/{booking_id}")(self.get_booking)
        self.app.delete("/api/bookings/{booking_id}")(self.cancel_booking)

        self.app.post("/api/batch")(self.handle_batch)

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        self.container.sweeper.start()
        try:
            yield
        finally:
            await self.container.close()

    async def handle_app_error(self, request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    async def handle_validation_error(self, request: Request, exc: Exception) -> JSONResponse:
        errors = exc.errors() if hasattr(exc, "errors") else []
        details = {
            "fields": {
                ".".join(str(part) for part in err.get("loc", ())): err.get("msg", "")
                for err in errors
            }
        }
        message = errors[0].get("msg", "Validation error") if errors else "Validation error"
        return _error_response(400, ValidationError.code, message, details)

    async def health_check(self):
        """Health check endpoint."""
        return {"status": "ok", "service": "yourstop"}

    async def status(self):
        """Client, cache, dedup, queue and sweeper statistics."""
        container = self.container
        return {
            "client": container.client.get_health_status(),
            "caches": {
                "availability": container.availability.cache.get_stats().to_dict(),
                "reviews": container.reviews.cache.get_stats().to_dict(),
                "restaurants": container.restaurants.cache.get_stats().to_dict(),
            },
            "providers": container.configured_providers(),
            "sweeper": container.sweeper.get_status(),
        }

    async def data_freshness(self) -> DataFreshness:
        return self.container.restaurants.get_data_freshness()

    async def list_restaurants(
        self,
        cuisine: list[str] = Query(default=[]),
        price_range: list[str] = Query(default=[]),
        rating: float | None = None,
        area: list[str] = Query(default=[]),
        features: list[str] = Query(default=[]),
        page: int = 1,
        limit: int = 30,
    ) -> RestaurantSearchResult:
        filters = RestaurantSearchFilters(
            cuisine=cuisine,
            price_range=price_range,
            rating=rating,
            area=area,
            features=features,
        )
        return await self.container.restaurants.get_restaurants(filters, page=page, limit=limit)

    async def get_restaurant(self, restaurant_id: str) -> RestaurantData:
        return await self.container.restaurants.get_restaurant(restaurant_id)

    async def get_availability(
        self,
        restaurant_id: str,
        date: str,
        party_size: int = 2,
        start_time: str | None = None,
        end_time: str | None = None,
        table_types: list[str] = Query(default=[]),
    ) -> RealTimeAvailability:
        time_range = None
        if start_time and end_time:
            time_range = TimeRange(start=start_time, end=end_time)
        filters = AvailabilityFilters(
            date=date,
            party_size=party_size,
            time_range=time_range,
            table_types=table_types,
        )
        return await self.container.availability.get_availability(restaurant_id, filters)

    async def get_menu(self, restaurant_id: str) -> MenuData:
        return await self.container.restaurants.get_menu(restaurant_id)

    async def get_reviews(
        self,
        restaurant_id: str,
        min_rating: int | None = None,
        sources: list[str] = Query(default=[]),
        verified: bool | None = None,
        keywords: list[str] = Query(default=[]),
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> ReviewResponse:
        filters = None
        if min_rating or sources or verified is not None or keywords or start or end:
            filters = ReviewFilters(
                min_rating=min_rating,
                sources=sources,
                verified=verified,
                keywords=keywords,
                date_range=DateRange(start=start, end=end) if start or end else None,
            )
        return await self.container.reviews.get_reviews(restaurant_id, filters)

    async def get_review_summary(self, restaurant_id: str) -> ReviewSummary:
        return await self.container.reviews.get_review_summary(restaurant_id)

    async def get_review_analytics(self, restaurant_id: str) -> ReviewAnalytics:
        return await self.container.reviews.get_review_analytics(restaurant_id)

    async def create_booking(self, booking: BookingRequest) -> BookingResponse:
        return await self.container.availability.book_table(booking)

    async def get_booking(self, booking_id: str) -> BookingStatus:
        return await self.container.availability.get_booking_status(booking_id)

    async def cancel_booking(self, booking_id: str) -> BookingStatus:
        return await self.container.availability.cancel_booking(booking_id)

    async def handle_batch(self, batch: BatchRequest) -> list[dict[str, Any]]:
        """
        Execute sub-requests against this app, in order.

        The answer has one ``{success, data}`` or ``{success, error}`` entry per
        sub-request, at the same position.
        """
        if len(batch.requests) > MAX_BATCH_REQUESTS:
            raise ValidationError(
                f"A batch may contain at most {MAX_BATCH_REQUESTS} requests",
                details={"size": len(batch.requests)},
            )

        results = []
        transport = httpx.ASGITransport(app=self.app)
        async with httpx.AsyncClient(transport=transport, base_url=INTERNAL_BASE_URL) as client:
            for item in batch.requests:
                results.append(await self._execute_batch_item(client, item))

        logger.debug(f"Batch of {len(batch.requests)} requests executed")
        return results

    async def _execute_batch_item(
        self, client: httpx.AsyncClient, item: BatchItem
    ) -> dict[str, Any]:
        path = item.url.split("?", 1)[0]
        if path.rstrip("/") == "/api/batch":
            return {"success": False, "error": "Nested batch requests are not supported"}

        try:
            response = await client.request(
                item.method.upper(),
                item.url,
                headers=item.headers,
                json=item.body if item.body is not None else None,
            )
        except Exception as e:
            logger.error(f"Batch item {item.id or item.url} failed: {e}")
            return {"success": False, "error": str(e)}

        if response.is_success:
            try:
                return {"success": True, "data": response.json()}
            except ValueError:
                return {"success": True, "data": response.text}
        return {"success": False, "error": _error_message(response)}


def create_app(container: ServiceContainer, manage_lifecycle: bool = True) -> FastAPI:
    """Create the FastAPI app.

    Args:
        container: Wired services
        manage_lifecycle: Start the cache sweeper on startup and close the
            container on shutdown

    Returns:
        FastAPI app
    """
    server = YourStopServer(container, manage_lifecycle=manage_lifecycle)
    return server.app
