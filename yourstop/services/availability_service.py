"""
AvailabilityService - Real-time table availability and bookings.

Availability is fetched from every configured booking provider in parallel,
merged slot-by-slot, and cached. When no provider is configured, or none of
them produced slots, deterministic mock availability is returned instead.
"""

import asyncio
import itertools
import re
from datetime import date, datetime, timedelta
from typing import Callable, Sequence

from loguru import logger

from yourstop.exceptions import (
    ConflictError,
    NotFoundError,
    RateLimitExceededError,
    ValidationError,
)
from yourstop.models import (
    AvailabilityFilters,
    BookingRequest,
    BookingResponse,
    BookingStatus,
    RealTimeAvailability,
    utc_now,
)
from yourstop.providers.base import AvailabilityProvider
from yourstop.services.cache import TTLCache
from yourstop.services.deduplicator import RequestDeduplicator
from yourstop.services.merge import merge_availability
from yourstop.services.mock_data import generate_mock_availability, mock_booking
from yourstop.services.rate_limiter import RateLimiter
from yourstop.settings import Settings

TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PARTY_SIZE = 1
MAX_PARTY_SIZE = 20

ALL_BOOKING_SYSTEMS_DOWN = "All booking systems are currently unavailable"


class AvailabilityService:
    """
    Availability aggregation plus booking lifecycle.

    Usage:
        service = AvailabilityService(settings, providers=[opentable, resy, toast])

        availability = await service.get_availability(
            "rest-1", AvailabilityFilters(date="2025-06-01", party_size=2)
        )
        response = await service.book_table(booking_request)
    """

    def __init__(
        self,
        settings: Settings,
        providers: Sequence[AvailabilityProvider],
        cache: TTLCache | None = None,
        rate_limiter: RateLimiter | None = None,
        today: Callable[[], date] = date.today,
    ):
        self._settings = settings
        self._providers = list(providers)
        self._cache = cache or TTLCache(
            prefix="availability_",
            max_size=settings.cache_max_size,
            default_ttl=settings.ttl("availability"),
            debug=settings.debug,
        )
        self._dedup = RequestDeduplicator(cache=self._cache, debug=settings.debug)
        self._booking_limiter = rate_limiter or RateLimiter()
        self._today = today

        self._bookings: dict[str, BookingStatus] = {}
        self._pending_signatures: set[tuple] = set()
        self._booking_nonce = itertools.count(1)

    @property
    def cache(self) -> TTLCache:
        return self._cache

    def configured_providers(self) -> list[AvailabilityProvider]:
        return [p for p in self._providers if p.is_configured()]

    async def get_availability(
        self, restaurant_id: str, filters: AvailabilityFilters
    ) -> RealTimeAvailability:
        """Merged availability for one restaurant and date; never raises for no data."""
        params = {"date": filters.date, "party_size": filters.party_size}
        if filters.time_range:
            params["time_range"] = f"{filters.time_range.start}-{filters.time_range.end}"
        key = self._cache.generate_key("availability", restaurant_id, params=params)

        return await self._dedup.dedupe(
            key,
            lambda: self._load_availability(restaurant_id, filters),
            ttl=self._settings.ttl("availability"),
        )

    async def _load_availability(
        self, restaurant_id: str, filters: AvailabilityFilters
    ) -> RealTimeAvailability:
        providers = self.configured_providers()
        if not providers:
            logger.info(
                f"No booking providers configured, using mock availability for {restaurant_id}"
            )
            return generate_mock_availability(restaurant_id, filters)

        results = await asyncio.gather(
            *(p.fetch_availability(restaurant_id, filters) for p in providers),
            return_exceptions=True,
        )
        availability = merge_availability(
            [self._settled(p.service_id, r) for p, r in zip(providers, results)],
            restaurant_id,
            filters.date,
        )
        if availability.time_slots:
            return availability

        logger.warning(
            f"No booking provider returned slots for {restaurant_id}, using mock availability"
        )
        return generate_mock_availability(restaurant_id, filters)

    @staticmethod
    def _settled(service_id: str, result):
        if isinstance(result, Exception):
            logger.error(f"Provider '{service_id}' raised: {result}")
            return None
        return result

    async def book_table(self, request: BookingRequest) -> BookingResponse:
        """
        Validate and place a booking.

        Raises:
            ValidationError: Malformed request (checked before any I/O)
            RateLimitExceededError: Too many attempts for this contact
            ConflictError: Same booking already confirmed or in progress
        """
        self.validate_booking(request)
        self._check_booking_rate(request)

        signature = self._booking_signature(request)
        self._check_conflict(signature)

        providers = self.configured_providers()
        if not providers:
            response = mock_booking(request, nonce=next(self._booking_nonce))
            self._remember(request, response)
            return response

        # Held until the outcome is known so an identical request conflicts meanwhile
        self._pending_signatures.add(signature)
        try:
            results = await asyncio.gather(
                *(p.book(request) for p in providers), return_exceptions=True
            )
        finally:
            self._pending_signatures.discard(signature)

        for provider, result in zip(providers, results):
            response = self._settled(provider.service_id, result)
            if response is not None and response.success:
                self._remember(request, response)
                return response

        logger.warning(f"Booking failed on every provider for {request.restaurant_id}")
        return BookingResponse(success=False, error=ALL_BOOKING_SYSTEMS_DOWN)

    def _check_conflict(self, signature: tuple) -> None:
        if signature in self._pending_signatures:
            raise ConflictError("An identical booking is already in progress")
        for status in self._bookings.values():
            if (
                status.status == "confirmed"
                and status.request is not None
                and self._booking_signature(status.request) == signature
            ):
                raise ConflictError(
                    "An identical booking is already confirmed",
                    details={"booking_id": status.booking_id},
                )

    def validate_booking(self, request: BookingRequest) -> None:
        errors: dict[str, str] = {}

        if not request.restaurant_id.strip():
            errors["restaurant_id"] = "Restaurant id is required"

        try:
            booking_date = datetime.strptime(request.date, "%Y-%m-%d").date()
        except ValueError:
            errors["date"] = "Date must be in YYYY-MM-DD format"
        else:
            if booking_date < self._today():
                errors["date"] = "Date cannot be in the past"

        if not TIME_RE.match(request.time):
            errors["time"] = "Time must be in HH:MM format"

        if not MIN_PARTY_SIZE <= request.party_size <= MAX_PARTY_SIZE:
            errors["party_size"] = (
                f"Party size must be between {MIN_PARTY_SIZE} and {MAX_PARTY_SIZE}"
            )

        if request.customer_info is not None:
            if not request.customer_info.name.strip():
                errors["customer_info.name"] = "Name is required"
            if not EMAIL_RE.match(request.customer_info.email):
                errors["customer_info.email"] = "Invalid email address"

        if errors:
            first = next(iter(errors.values()))
            raise ValidationError(first, details={"fields": errors})

    def _check_booking_rate(self, request: BookingRequest) -> None:
        contact = self._contact_key(request)
        if contact is None:
            return
        window = self._settings.booking_attempts_window_seconds
        allowed = self._booking_limiter.can_make_request(
            f"booking:{contact}",
            self._settings.booking_attempts_limit,
            timedelta(seconds=window),
        )
        if not allowed:
            raise RateLimitExceededError(
                "Too many booking attempts, please try again later",
                details={"retry_window_seconds": window},
            )

    @staticmethod
    def _contact_key(request: BookingRequest) -> str | None:
        info = request.customer_info
        if info is None:
            return None
        return info.email.strip().lower() or info.phone.strip() or None

    def _booking_signature(self, request: BookingRequest) -> tuple:
        return (
            request.restaurant_id,
            request.date,
            request.time,
            request.party_size,
            self._contact_key(request),
        )

    def _remember(self, request: BookingRequest, response: BookingResponse) -> None:
        if not response.booking_id:
            return
        self._bookings[response.booking_id] = BookingStatus(
            booking_id=response.booking_id,
            status="confirmed",
            request=request,
            confirmation_code=response.confirmation_code,
        )
        # Cached availability for the restaurant is now stale
        self._invalidate_availability(request.restaurant_id)
        logger.info(
            f"Booking {response.booking_id} confirmed for {request.restaurant_id} "
            f"via {response.source}"
        )

    async def get_booking_status(self, booking_id: str) -> BookingStatus:
        key = f"booking_{booking_id}"
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        status = self._bookings.get(booking_id)
        if status is None:
            raise NotFoundError(f"Booking {booking_id} not found")

        self._cache.set(key, status, self._settings.ttl("booking"))
        return status

    async def cancel_booking(self, booking_id: str) -> BookingStatus:
        status = self._bookings.get(booking_id)
        if status is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        if status.status == "cancelled":
            raise ConflictError(f"Booking {booking_id} is already cancelled")

        cancelled = status.model_copy(
            update={"status": "cancelled", "updated_at": utc_now()}
        )
        self._bookings[booking_id] = cancelled
        self._cache.clear_entry(f"booking_{booking_id}")
        if status.request is not None:
            self._invalidate_availability(status.request.restaurant_id)

        logger.info(f"Booking {booking_id} cancelled")
        return cancelled

    def _invalidate_availability(self, restaurant_id: str) -> None:
        # Keys read "availability_<id>?<params>"; the delimiters keep "r1" from matching "r10"
        self._cache.invalidate(f"availability_{restaurant_id}?")

    def clear_cache(self) -> None:
        self._cache.clear()
