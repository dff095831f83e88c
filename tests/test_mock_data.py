from datetime import datetime, timedelta, timezone

from yourstop.models import AvailabilityFilters, BookingRequest, TimeRange
from yourstop.services.mock_data import (
    MOCK_SOURCE,
    availability_probability,
    generate_mock_availability,
    generate_mock_reviews,
    is_holiday,
    mock_booking,
    mock_menu,
    mock_restaurants,
)


def test_weekday_and_weekend_hours():
    weekday = generate_mock_availability("r1", AvailabilityFilters(date="2026-03-10"))
    weekend = generate_mock_availability("r1", AvailabilityFilters(date="2026-03-14"))

    assert weekday.time_slots[0].time == "18:00"
    assert weekday.time_slots[-1].time == "21:30"
    assert len(weekday.time_slots) == 8
    assert weekend.time_slots[0].time == "12:00"
    assert weekend.time_slots[-1].time == "22:30"


def test_availability_is_deterministic_and_tagged():
    filters = AvailabilityFilters(date="2026-03-10", party_size=4)

    first = generate_mock_availability("r1", filters)
    second = generate_mock_availability("r1", filters)

    assert first.time_slots == second.time_slots
    assert first.source == MOCK_SOURCE
    assert first.sources == [MOCK_SOURCE]


def test_availability_always_has_a_bookable_slot():
    # Christmas Day 2027 is a Saturday; a party of 12 leaves almost nothing open

    for restaurant in ("a", "b", "c", "d", "e"):
        result = generate_mock_availability(
            restaurant, AvailabilityFilters(date="2027-12-25", party_size=12)
        )
        assert any(slot.available for slot in result.time_slots)


def test_time_range_filters_slots():
    filters = AvailabilityFilters(
        date="2026-03-10", time_range=TimeRange(start="19:00", end="20:00")
    )

    result = generate_mock_availability("r1", filters)

    assert [s.time for s in result.time_slots] == ["19:00", "19:30", "20:00"]


def test_time_range_never_empties_the_result():
    filters = AvailabilityFilters(
        date="2026-03-10", time_range=TimeRange(start="08:00", end="09:00")
    )

    assert len(generate_mock_availability("r1", filters).time_slots) == 8


def test_probability_modifiers():
    base = availability_probability("18:00", False, False, False, 2)
    peak = availability_probability("19:30", False, False, False, 2)
    crowded = availability_probability("18:00", True, True, True, 10)

    assert base == 0.7
    assert round(peak, 3) == 0.21
    assert crowded < 0.01
    assert is_holiday("2030-12-25")


def test_mock_booking_ids_vary_with_nonce():
    request = BookingRequest(
        restaurant_id="r1", date="2026-03-10", time="19:00", party_size=2
    )

    first = mock_booking(request, nonce=1)
    second = mock_booking(request, nonce=2)

    assert first.success and first.source == MOCK_SOURCE
    assert first.booking_id.startswith("B") and len(first.booking_id) == 13
    assert len(first.confirmation_code) == 8
    assert 5 <= first.estimated_wait_time <= 14
    assert first.booking_id != second.booking_id
    assert mock_booking(request, nonce=1) == first


def test_mock_reviews_are_deterministic_and_recent():
    reference = datetime(2026, 3, 10, 15, 30, tzinfo=timezone.utc)

    reviews = generate_mock_reviews("r1", reference=reference)
    again = generate_mock_reviews("r1", reference=reference.replace(hour=9))

    assert 50 <= len(reviews) <= 100
    assert reviews == again
    assert all(1 <= r.rating <= 5 for r in reviews)
    start_of_day = reference.replace(hour=0, minute=0)
    assert all(start_of_day - timedelta(days=730) <= r.date <= start_of_day for r in reviews)
    assert len({r.id for r in reviews}) == len(reviews)


def test_mock_reviews_count_override():
    assert len(generate_mock_reviews("r1", count=3)) == 3


def test_mock_catalogue_and_menu():
    restaurants = mock_restaurants()
    menu = mock_menu("r1")

    assert len(restaurants) == 8
    assert len({r.id for r in restaurants}) == 8
    assert all(r.data_source.primary == MOCK_SOURCE for r in restaurants)
    assert [c.id for c in menu.categories] == ["starters", "mains", "desserts"]
    assert menu.source == MOCK_SOURCE
