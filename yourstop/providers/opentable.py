"""
OpenTable partner API data source for listings, availability and reservations.
"""

from typing import Any

from loguru import logger

from yourstop.models import (
    AvailabilityFilters,
    BookingRequest,
    BookingResponse,
    DataSourceInfo,
    RealTimeAvailability,
    RestaurantData,
    RestaurantLocation,
    RestaurantSearchFilters,
    TableType,
    TimeSlot,
)
from yourstop.providers.base import BaseProvider

PRICE_BANDS = {1: "£", 2: "££", 3: "£££", 4: "££££"}


class OpenTableProvider(BaseProvider):
    """OpenTable restaurant listings, slot availability and bookings."""

    SERVICE_ID = "opentable"

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    async def search_restaurants(
        self, filters: RestaurantSearchFilters | None = None
    ) -> list[RestaurantData] | None:
        params = {
            "latitude": self.settings.search_latitude,
            "longitude": self.settings.search_longitude,
            "radius": self.settings.search_radius_meters,
        }

        try:
            data = await self._get(
                "/restaurants", params=params, cache_ttl=self.settings.ttl("basic_info")
            )
            return [self._to_restaurant(item) for item in data.get("items", [])]

        except Exception as e:
            logger.warning(f"OpenTable search failed: {e}")
            return None

    async def fetch_availability(
        self, restaurant_id: str, filters: AvailabilityFilters
    ) -> RealTimeAvailability | None:
        body: dict[str, Any] = {"date": filters.date, "party_size": filters.party_size}
        if filters.time_range:
            body["time_range"] = filters.time_range.model_dump()

        try:
            data = await self._post(f"/restaurants/{restaurant_id}/availability", body)
            return RealTimeAvailability(
                restaurant_id=restaurant_id,
                date=filters.date,
                time_slots=[self._to_slot(slot) for slot in data.get("times", [])],
                source=self.SERVICE_ID,
            )

        except Exception as e:
            logger.warning(f"OpenTable availability failed for {restaurant_id}: {e}")
            return None

    async def book(self, request: BookingRequest) -> BookingResponse | None:
        body: dict[str, Any] = {
            "restaurant_id": request.restaurant_id,
            "date": request.date,
            "time": request.time,
            "party_size": request.party_size,
            "special_requests": request.special_requests,
        }
        if request.customer_info:
            body["customer"] = request.customer_info.model_dump()

        try:
            data = await self._post("/reservations", body, priority=10)
            return BookingResponse(
                success=True,
                booking_id=str(data["reservation_id"]),
                confirmation_code=data.get("confirmation_number"),
                source=self.SERVICE_ID,
            )

        except Exception as e:
            logger.warning(f"OpenTable booking failed for {request.restaurant_id}: {e}")
            return None

    def _to_slot(self, slot: dict[str, Any]) -> TimeSlot:
        tables = [
            TableType(type=t.get("type", "standard"), capacity=t.get("capacity", 2))
            for t in slot.get("table_types", [])
        ]
        return TimeSlot(
            time=slot["time"][:5],
            available=bool(slot.get("available", True)),
            table_types=tables,
            max_party_size=slot.get("max_party_size")
            or max((t.capacity for t in tables), default=0),
            min_party_size=slot.get("min_party_size", 1),
            price=slot.get("price"),
        )

    def _to_restaurant(self, item: dict[str, Any]) -> RestaurantData:
        return RestaurantData(
            id=str(item["rid"]),
            name=item.get("name", ""),
            address=item.get("address", ""),
            phone=item.get("phone", ""),
            cuisine=item.get("cuisine", ""),
            rating=item.get("rating") or 0.0,
            review_count=item.get("reviews_count", 0),
            price_range=PRICE_BANDS.get(item.get("price_range"), "££"),
            location=RestaurantLocation(
                latitude=item.get("lat", self.settings.search_latitude),
                longitude=item.get("lng", self.settings.search_longitude),
                postcode=item.get("postal_code", ""),
                area=item.get("area", ""),
            ),
            data_source=DataSourceInfo(primary="opentable", reliability=90),
        )
