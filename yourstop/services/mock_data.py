"""
Deterministic stand-in data used when no provider can answer.

Each generator seeds its own ``random.Random`` from an md5 of its inputs, so
equal inputs always produce equal output while different restaurants and dates
still look varied. Everything produced here is tagged ``source="mock"``.
"""

import hashlib
import random
import string
from datetime import datetime, time, timedelta, timezone

from yourstop.models import (
    AvailabilityFilters,
    BookingRequest,
    BookingResponse,
    DataSourceInfo,
    DayHours,
    MenuCategory,
    MenuData,
    MenuItem,
    RealTimeAvailability,
    RestaurantData,
    RestaurantImage,
    RestaurantLocation,
    ReviewData,
    ReviewReply,
    SpecialOffer,
    TableType,
    TimeSlot,
)

MOCK_SOURCE = "mock"

# UK bank holidays; month-day entries recur every year
HOLIDAYS = {
    "2024-01-01",
    "2024-03-29",
    "2024-04-01",
    "2024-05-06",
    "2024-05-27",
    "2024-08-26",
    "2024-12-25",
    "2024-12-26",
    "12-25",
    "12-26",
    "01-01",
}
PEAK_DATES = {"02-14", "12-31"}

PEAK_DINNER = (19.0, 21.0)
LUNCH = (12.0, 14.0)


def seeded_random(*parts: object) -> random.Random:
    digest = hashlib.md5("|".join(str(p) for p in parts).encode()).hexdigest()
    return random.Random(int(digest, 16))


def is_holiday(date: str) -> bool:
    return date in HOLIDAYS or date[5:] in HOLIDAYS


def is_peak_date(date: str) -> bool:
    return date[5:] in PEAK_DATES


def availability_probability(
    slot_time: str,
    is_weekend: bool,
    holiday: bool,
    peak_date: bool,
    party_size: int,
) -> float:
    hour, minute = (int(p) for p in slot_time.split(":"))
    value = hour + minute / 60

    probability = 0.7
    if PEAK_DINNER[0] <= value <= PEAK_DINNER[1]:
        probability *= 0.3
    elif LUNCH[0] <= value <= LUNCH[1]:
        probability *= 0.6
    if is_weekend:
        probability *= 0.5
    if holiday:
        probability *= 0.2
    if peak_date:
        probability *= 0.4
    if party_size > 4:
        probability *= 0.6
    if party_size > 8:
        probability *= 0.3
    return probability


def _table_types(rng: random.Random) -> list[TableType]:
    tables = []
    if rng.random() > 0.3:
        tables.append(TableType(type="standard", capacity=2))
    if rng.random() > 0.5:
        tables.append(TableType(type="booth", capacity=4))
    if rng.random() > 0.7:
        tables.append(TableType(type="outdoor", capacity=2))
    if rng.random() > 0.8:
        tables.append(TableType(type="private", capacity=8))
    return tables or [TableType(type="standard", capacity=2)]


def _available_slot(slot_time: str, rng: random.Random) -> TimeSlot:
    tables = _table_types(rng)
    return TimeSlot(
        time=slot_time,
        available=True,
        table_types=tables,
        max_party_size=max(t.capacity for t in tables),
        min_party_size=1,
        price=round(40 + rng.random() * 20, 2),
        estimated_wait_time=rng.randint(5, 19) if rng.random() > 0.8 else None,
    )


def _in_range(slot_time: str, filters: AvailabilityFilters) -> bool:
    if filters.time_range is None:
        return True
    return filters.time_range.start <= slot_time <= filters.time_range.end


def generate_mock_availability(
    restaurant_id: str, filters: AvailabilityFilters
) -> RealTimeAvailability:
    """Half-hourly slots whose availability follows day, time and party size."""
    rng = seeded_random("availability", restaurant_id, filters.date, filters.party_size)

    day = datetime.strptime(filters.date, "%Y-%m-%d")
    is_weekend = day.weekday() >= 5
    holiday = is_holiday(filters.date)
    peak_date = is_peak_date(filters.date)
    start_hour, end_hour = (12, 23) if is_weekend else (18, 22)

    slots: list[TimeSlot] = []
    for hour in range(start_hour, end_hour):
        for minute in (0, 30):
            slot_time = f"{hour:02d}:{minute:02d}"
            probability = availability_probability(
                slot_time, is_weekend, holiday, peak_date, filters.party_size
            )
            if rng.random() < probability:
                slots.append(_available_slot(slot_time, rng))
            else:
                slots.append(
                    TimeSlot(
                        time=slot_time,
                        available=False,
                        estimated_wait_time=rng.randint(15, 74),
                    )
                )

    in_range = [slot for slot in slots if _in_range(slot.time, filters)]
    if in_range:
        slots = in_range

    # Always leave something bookable
    if not any(slot.available for slot in slots):
        slots[0] = _available_slot(slots[0].time, rng)

    return RealTimeAvailability(
        restaurant_id=restaurant_id,
        date=filters.date,
        time_slots=slots,
        source=MOCK_SOURCE,
        sources=[MOCK_SOURCE],
    )


def mock_booking(request: BookingRequest, nonce: int = 0) -> BookingResponse:
    rng = seeded_random(
        "booking",
        request.restaurant_id,
        request.date,
        request.time,
        request.party_size,
        nonce,
    )
    alphabet = string.ascii_uppercase + string.digits
    return BookingResponse(
        success=True,
        booking_id="B" + "".join(rng.choices(string.digits, k=12)),
        confirmation_code="".join(rng.choices(alphabet, k=8)),
        estimated_wait_time=rng.randint(5, 14),
        source=MOCK_SOURCE,
    )


REVIEWERS = [
    "Alice Johnson", "Bob Smith", "Charlie Brown", "Diana Prince", "Eve Wilson",
    "Frank Miller", "Grace Lee", "Henry Davis", "Ivy Chen", "Jack Wilson",
    "Kate Anderson", "Liam O'Connor", "Maya Patel", "Noah Kim", "Olivia Taylor",
    "Paul Rodriguez", "Quinn Murphy", "Rachel Green", "Sam Wilson", "Tina Turner",
]

POSITIVE_COMMENTS = [
    "Absolutely fantastic food and service! Highly recommend.",
    "The best restaurant in London. Amazing atmosphere and delicious food.",
    "Perfect for a special occasion. The staff was incredibly attentive.",
    "Outstanding quality and presentation. Will definitely be back!",
    "Exceptional dining experience. Every dish was perfectly prepared.",
    "Great ambiance and wonderful service. The food exceeded expectations.",
    "Excellent food, great atmosphere, and friendly staff.",
    "Amazing experience from start to finish. Can't wait to return!",
]

NEUTRAL_COMMENTS = [
    "Good food and decent service. Nothing extraordinary but solid.",
    "Nice atmosphere and okay food. A bit pricey for what you get.",
    "Average experience. Food was fine but nothing to write home about.",
    "Okay place with reasonable prices. Service was adequate.",
    "Decent meal but nothing special. Would consider returning.",
    "Average restaurant with typical London prices.",
]

NEGATIVE_COMMENTS = [
    "Disappointing experience. Food was cold and service was slow.",
    "Overpriced for the quality. Would not recommend.",
    "Poor service and mediocre food. Not worth the money.",
    "Terrible experience. Rude staff and subpar food.",
    "Very disappointing. Food was bland and service was awful.",
    "Worst restaurant experience in London. Terrible all around.",
]

REVIEW_SOURCES = ["google", "yelp", "tripadvisor", "foursquare"]


def _reference_day(reference: datetime | None) -> datetime:
    now = reference or datetime.now(timezone.utc)
    return datetime.combine(now.date(), time.min, tzinfo=timezone.utc)


def generate_mock_reviews(
    restaurant_id: str,
    count: int | None = None,
    reference: datetime | None = None,
) -> list[ReviewData]:
    """
    Roughly 70% positive, 15% neutral and 15% negative reviews from the last
    two years. Dates are anchored to the start of the reference day.
    """
    rng = seeded_random("reviews", restaurant_id)
    end = _reference_day(reference)
    span = timedelta(days=730).total_seconds()
    total = count if count is not None else rng.randint(50, 100)

    reviews = []
    for i in range(total):
        roll = rng.random()
        if roll > 0.3:
            rating = rng.randint(4, 5)
            comment = rng.choice(POSITIVE_COMMENTS)
        elif rng.random() > 0.5:
            rating = 3
            comment = rng.choice(NEUTRAL_COMMENTS)
        else:
            rating = rng.randint(1, 2)
            comment = rng.choice(NEGATIVE_COMMENTS)

        posted = end - timedelta(seconds=rng.random() * span)
        response = None
        if rng.random() > 0.7:
            response = ReviewReply(
                text="Thank you for your feedback! We're glad you enjoyed your experience.",
                author="Restaurant Manager",
                date=posted + timedelta(days=rng.random() * 7),
            )

        reviews.append(
            ReviewData(
                id=f"review-{restaurant_id}-{i + 1}",
                author=rng.choice(REVIEWERS),
                rating=rating,
                comment=comment,
                date=posted,
                source=rng.choice(REVIEW_SOURCES),
                helpful=rng.randint(0, 19),
                verified=rng.random() > 0.3,
                response=response,
            )
        )

    return reviews


DEFAULT_HOURS = {
    "monday": DayHours(open="09:00", close="22:00"),
    "tuesday": DayHours(open="09:00", close="22:00"),
    "wednesday": DayHours(open="09:00", close="22:00"),
    "thursday": DayHours(open="09:00", close="22:00"),
    "friday": DayHours(open="09:00", close="23:00"),
    "saturday": DayHours(open="09:00", close="23:00"),
    "sunday": DayHours(open="10:00", close="22:00"),
}

# id, name, cuisine, price range, rating, reviews, area, postcode, lat, lng, offers
_CATALOGUE = [
    ("mock-dishoom-covent-garden", "Dishoom Covent Garden", "Indian", "££", 4.6, 12840,
     "Covent Garden", "WC2H 9FB", 51.5124, -0.1265, ["Breakfast Menu", "Outdoor Seating"]),
    ("mock-barrafina-soho", "Barrafina Soho", "Spanish, Tapas", "£££", 4.7, 3210,
     "Soho", "W1D 4EA", 51.5136, -0.1321, ["Counter Dining"]),
    ("mock-padella-borough", "Padella Borough Market", "Italian, Pasta", "££", 4.5, 6050,
     "Borough", "SE1 9AG", 51.5055, -0.0911, ["Walk-ins Only"]),
    ("mock-hawksmoor-seven-dials", "Hawksmoor Seven Dials", "Steakhouse, British", "££££", 4.6,
     4480, "Covent Garden", "WC2H 9JU", 51.5139, -0.1254, ["Happy Hour", "Private Dining"]),
    ("mock-kiln-soho", "Kiln", "Thai", "££", 4.7, 2890,
     "Soho", "W1F 9DG", 51.5118, -0.1355, ["Counter Dining"]),
    ("mock-sketch-mayfair", "Sketch", "French, Modern European", "££££", 4.3, 5120,
     "Mayfair", "W1S 2XG", 51.5127, -0.1417, ["Afternoon Tea", "Private Dining"]),
    ("mock-flat-iron-shoreditch", "Flat Iron Shoreditch", "Steakhouse", "££", 4.5, 2310,
     "Shoreditch", "EC2A 3AR", 51.5246, -0.0794, ["Happy Hour"]),
    ("mock-bao-fitzrovia", "BAO Fitzrovia", "Taiwanese, Asian", "££", 4.4, 1980,
     "Fitzrovia", "W1T 2QA", 51.5192, -0.1365, ["Karaoke Rooms"]),
]


def mock_restaurants() -> list[RestaurantData]:
    """Fixed London catalogue, identical on every call."""
    restaurants = []
    for (rid, name, cuisine, price, rating, review_count, area, postcode,
         lat, lng, features) in _CATALOGUE:
        primary_cuisine = cuisine.split(",")[0]
        restaurants.append(
            RestaurantData(
                id=rid,
                name=name,
                address=f"{area}, London {postcode}",
                phone="+44 20 7000 0000",
                cuisine=cuisine,
                description=(
                    f"Experience authentic {primary_cuisine} cuisine in the heart "
                    f"of London."
                ),
                rating=rating,
                review_count=review_count,
                price_range=price,
                location=RestaurantLocation(
                    latitude=lat, longitude=lng, postcode=postcode, area=area
                ),
                images=[
                    RestaurantImage(
                        id=f"{rid}_0",
                        url=f"https://images.example.com/{rid}/0.jpg",
                        alt=f"{name} - Photo 1",
                        source=MOCK_SOURCE,
                        is_primary=True,
                    )
                ],
                operating_hours=dict(DEFAULT_HOURS),
                special_offers=[
                    SpecialOffer(
                        id=f"offer_{rid}_{index}",
                        title=feature,
                        type="specialty",
                    )
                    for index, feature in enumerate(features)
                ],
                data_source=DataSourceInfo(primary=MOCK_SOURCE, reliability=50),
            )
        )
    return restaurants


_MENU = [
    ("starters", "Starters", [
        ("Burrata", "Heritage tomatoes, basil oil", 9.5, ["vegetarian"]),
        ("Salt & Pepper Squid", "Lime aioli", 8.0, []),
        ("Soup of the Day", "Sourdough", 6.5, ["vegan"]),
    ]),
    ("mains", "Mains", [
        ("Rib-eye Steak", "Triple-cooked chips, peppercorn sauce", 29.0, ["gluten-free"]),
        ("Wild Mushroom Risotto", "Parmesan, truffle", 17.5, ["vegetarian"]),
        ("Fish & Chips", "Mushy peas, tartare sauce", 18.0, []),
        ("Chicken Katsu", "Steamed rice, curry sauce", 16.5, []),
    ]),
    ("desserts", "Desserts", [
        ("Sticky Toffee Pudding", "Vanilla ice cream", 8.0, ["vegetarian"]),
        ("Sorbet Selection", "Seasonal fruit", 6.0, ["vegan", "gluten-free"]),
    ]),
]


def mock_menu(restaurant_id: str) -> MenuData:
    categories = [
        MenuCategory(
            id=category_id,
            name=category_name,
            items=[
                MenuItem(
                    id=f"{restaurant_id}-{category_id}-{index}",
                    name=name,
                    description=description,
                    price=price,
                    dietary=dietary,
                )
                for index, (name, description, price, dietary) in enumerate(items)
            ],
        )
        for category_id, category_name, items in _MENU
    ]
    return MenuData(restaurant_id=restaurant_id, categories=categories, source=MOCK_SOURCE)
