"""
Toast POS data source for availability, menus and reservations.

Toast scopes restaurant calls with the ``Toast-Restaurant-External-ID`` header.
"""

from typing import Any

from loguru import logger

from yourstop.models import (
    AvailabilityFilters,
    BookingRequest,
    BookingResponse,
    MenuCategory,
    MenuData,
    MenuItem,
    RealTimeAvailability,
    TableType,
    TimeSlot,
)
from yourstop.providers.base import BaseProvider


class ToastProvider(BaseProvider):
    """Toast table availability, menus and bookings."""

    SERVICE_ID = "toast"

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    async def fetch_availability(
        self, restaurant_id: str, filters: AvailabilityFilters
    ) -> RealTimeAvailability | None:
        params = {"date": filters.date, "partySize": filters.party_size}

        try:
            data = await self._get(
                f"/restaurants/{restaurant_id}/availability",
                params=params,
                cache_ttl=self.settings.ttl("availability"),
            )
            return RealTimeAvailability(
                restaurant_id=restaurant_id,
                date=filters.date,
                time_slots=[self._to_slot(slot) for slot in data.get("timeSlots", [])],
                source=self.SERVICE_ID,
            )

        except Exception as e:
            logger.warning(f"Toast availability failed for {restaurant_id}: {e}")
            return None

    async def fetch_menu(self, restaurant_id: str) -> MenuData | None:
        try:
            result = await self.client.request(
                service_id=self.SERVICE_ID,
                url=f"{self.base_url}/menus/v2/menus",
                headers={"Toast-Restaurant-External-ID": restaurant_id},
                params={"restaurant": restaurant_id},
                cache_ttl=self.settings.ttl("menu"),
            )
            categories = [
                self._to_category(group)
                for menu in result.data.get("menus", [])
                for group in menu.get("menuGroups", [])
            ]
            return MenuData(
                restaurant_id=restaurant_id,
                categories=categories,
                source=self.SERVICE_ID,
            )

        except Exception as e:
            logger.warning(f"Toast menu failed for {restaurant_id}: {e}")
            return None

    async def book(self, request: BookingRequest) -> BookingResponse | None:
        body: dict[str, Any] = {
            "date": request.date,
            "time": request.time,
            "partySize": request.party_size,
            "notes": request.special_requests,
        }
        if request.customer_info:
            body["guest"] = request.customer_info.model_dump()

        try:
            data = await self._post(
                f"/restaurants/{request.restaurant_id}/reservations", body, priority=10
            )
            return BookingResponse(
                success=True,
                booking_id=str(data["guid"]),
                confirmation_code=data.get("confirmationCode"),
                source=self.SERVICE_ID,
            )

        except Exception as e:
            logger.warning(f"Toast booking failed for {request.restaurant_id}: {e}")
            return None

    def _to_slot(self, slot: dict[str, Any]) -> TimeSlot:
        capacity = slot.get("capacity", 0)
        return TimeSlot(
            time=slot["time"][:5],
            available=bool(slot.get("available", False)),
            table_types=[
                TableType(type=t, capacity=capacity) for t in slot.get("tableTypes", [])
            ],
            max_party_size=capacity,
            min_party_size=1 if capacity else 0,
            estimated_wait_time=slot.get("waitMinutes"),
        )

    def _to_category(self, group: dict[str, Any]) -> MenuCategory:
        return MenuCategory(
            id=group["guid"],
            name=group.get("name", ""),
            items=[
                MenuItem(
                    id=item["guid"],
                    name=item.get("name", ""),
                    description=item.get("description") or "",
                    price=item.get("price") or 0.0,
                )
                for item in group.get("menuItems", [])
            ],
        )
