"""
Merge rules for multi-provider results.

Every merge walks its inputs in provider order, so the outcome depends only on
the order providers were listed, never on which one answered first.
"""

from typing import Any, Iterable, Sequence

from yourstop.models import (
    RealTimeAvailability,
    RestaurantData,
    ReviewData,
    TimeSlot,
)

MAX_RESTAURANT_IMAGES = 10
MAX_RESTAURANT_REVIEWS = 50


def _is_empty(value: Any) -> bool:
    # numbers and booleans are real values, including 0 and False
    if value is None:
        return True
    if isinstance(value, (str, list, dict)):
        return len(value) == 0
    return False


def _first_non_empty(current: Any, candidate: Any) -> Any:
    return candidate if _is_empty(current) else current


def merge_time_slots(slots: Iterable[TimeSlot]) -> list[TimeSlot]:
    """
    Collapse slots sharing a ``time``.

    ``available`` is OR-ed, table types are unioned by type (first kept),
    party size bounds widen, and scalar fields keep the first non-empty value.
    Result is sorted by time.
    """
    merged: dict[str, TimeSlot] = {}

    for slot in slots:
        existing = merged.get(slot.time)
        if existing is None:
            merged[slot.time] = slot.model_copy(deep=True)
            continue

        known_types = {t.type for t in existing.table_types}
        table_types = list(existing.table_types)
        for table in slot.table_types:
            if table.type not in known_types:
                known_types.add(table.type)
                table_types.append(table.model_copy())

        merged[slot.time] = TimeSlot(
            time=slot.time,
            available=existing.available or slot.available,
            table_types=table_types,
            max_party_size=max(existing.max_party_size, slot.max_party_size),
            min_party_size=min(existing.min_party_size, slot.min_party_size),
            price=_first_non_empty(existing.price, slot.price),
            estimated_wait_time=(
                existing.estimated_wait_time
                if existing.estimated_wait_time is not None
                else slot.estimated_wait_time
            ),
        )

    return sorted(merged.values(), key=lambda s: s.time)


def merge_availability(
    results: Sequence[RealTimeAvailability | None],
    restaurant_id: str,
    date: str,
) -> RealTimeAvailability:
    """Merge per-provider availability, skipping providers that gave nothing."""
    slots: list[TimeSlot] = []
    sources: list[str] = []

    for result in results:
        if result is None:
            continue
        slots.extend(result.time_slots)
        sources.append(result.source)

    return RealTimeAvailability(
        restaurant_id=restaurant_id,
        date=date,
        time_slots=merge_time_slots(slots),
        source="merged",
        sources=sources,
    )


def merge_reviews(batches: Sequence[Sequence[ReviewData] | None]) -> list[ReviewData]:
    """Union reviews by id; later duplicates only fill fields left empty."""
    merged: dict[str, ReviewData] = {}

    for batch in batches:
        for review in batch or []:
            existing = merged.get(review.id)
            if existing is None:
                merged[review.id] = review
                continue

            updates = {
                name: getattr(review, name)
                for name in ReviewData.model_fields
                if _is_empty(getattr(existing, name))
                and not _is_empty(getattr(review, name))
            }
            if updates:
                merged[review.id] = existing.model_copy(update=updates)

    return list(merged.values())


def _merge_restaurant(existing: RestaurantData, other: RestaurantData) -> RestaurantData:
    scalar_fields = (
        "name",
        "address",
        "phone",
        "cuisine",
        "description",
        "operating_hours",
        "data_source",
    )
    updates: dict[str, Any] = {
        name: _first_non_empty(getattr(existing, name), getattr(other, name))
        for name in scalar_fields
    }
    # a restaurant rating or review count of 0 means the provider had none
    updates["rating"] = existing.rating or other.rating
    updates["review_count"] = existing.review_count or other.review_count

    image_ids = {image.id for image in existing.images}
    images = list(existing.images)
    images.extend(image for image in other.images if image.id not in image_ids)
    updates["images"] = images[:MAX_RESTAURANT_IMAGES]

    review_ids = {review.id for review in existing.reviews}
    reviews = list(existing.reviews)
    reviews.extend(review for review in other.reviews if review.id not in review_ids)
    updates["reviews"] = reviews[:MAX_RESTAURANT_REVIEWS]

    offer_ids = {offer.id for offer in existing.special_offers}
    offers = list(existing.special_offers)
    offers.extend(offer for offer in other.special_offers if offer.id not in offer_ids)
    updates["special_offers"] = offers

    return existing.model_copy(update=updates)


def merge_restaurants(
    batches: Sequence[Sequence[RestaurantData] | None],
) -> list[RestaurantData]:
    """Union restaurants by id, keeping first-seen order."""
    merged: dict[str, RestaurantData] = {}

    for batch in batches:
        for restaurant in batch or []:
            existing = merged.get(restaurant.id)
            if existing is None:
                merged[restaurant.id] = restaurant
            else:
                merged[restaurant.id] = _merge_restaurant(existing, restaurant)

    return list(merged.values())
