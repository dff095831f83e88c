"""
Resy API data source for availability and reservations.
"""

from typing import Any

from loguru import logger

from yourstop.models import (
    AvailabilityFilters,
    BookingRequest,
    BookingResponse,
    RealTimeAvailability,
    TableType,
    TimeSlot,
)
from yourstop.providers.base import BaseProvider, parse_timestamp


class ResyProvider(BaseProvider):
    """Resy venue slots and bookings."""

    SERVICE_ID = "resy"

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    async def fetch_availability(
        self, restaurant_id: str, filters: AvailabilityFilters
    ) -> RealTimeAvailability | None:
        params = {
            "venue_id": restaurant_id,
            "day": filters.date,
            "party_size": filters.party_size,
        }

        try:
            data = await self._get(
                "/find", params=params, cache_ttl=self.settings.ttl("availability")
            )
            slots: list[TimeSlot] = []
            for venue in data.get("results", {}).get("venues", []):
                slots.extend(
                    self._to_slot(slot, filters.party_size)
                    for slot in venue.get("slots", [])
                )
            return RealTimeAvailability(
                restaurant_id=restaurant_id,
                date=filters.date,
                time_slots=slots,
                source=self.SERVICE_ID,
            )

        except Exception as e:
            logger.warning(f"Resy availability failed for {restaurant_id}: {e}")
            return None

    async def book(self, request: BookingRequest) -> BookingResponse | None:
        body = {
            "venue_id": request.restaurant_id,
            "day": request.date,
            "time": request.time,
            "party_size": request.party_size,
        }

        try:
            data = await self._post("/book", body, priority=10)
            return BookingResponse(
                success=True,
                booking_id=str(data["reservation_id"]),
                confirmation_code=data.get("resy_token"),
                source=self.SERVICE_ID,
            )

        except Exception as e:
            logger.warning(f"Resy booking failed for {request.restaurant_id}: {e}")
            return None

    def _to_slot(self, slot: dict[str, Any], party_size: int) -> TimeSlot:
        # Every slot Resy returns is bookable for the requested party size
        start = parse_timestamp(slot["date"]["start"])
        table = slot.get("config", {}).get("type", "standard").lower()
        return TimeSlot(
            time=start.strftime("%H:%M"),
            available=True,
            table_types=[TableType(type=table, capacity=party_size)],
            max_party_size=slot.get("size", {}).get("max", party_size),
            min_party_size=slot.get("size", {}).get("min", 1),
        )
