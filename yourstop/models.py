"""
Value objects shared by providers, aggregators and the HTTP API.
"""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field, field_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# Availability & booking


class TableType(BaseModel):
    type: str  # 'standard' | 'booth' | 'outdoor' | 'private' | ...
    available: bool = True
    capacity: int = 2


class TimeSlot(BaseModel):
    """A bookable time for one date; identity key is ``time`` (HH:MM)."""

    time: str
    available: bool = False
    table_types: list[TableType] = Field(default_factory=list)
    max_party_size: int = 0
    min_party_size: int = 0
    price: float | None = None
    estimated_wait_time: int | None = None  # minutes


class RealTimeAvailability(BaseModel):
    restaurant_id: str
    date: str
    time_slots: list[TimeSlot] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=utc_now)
    source: str  # provider id, 'merged' or 'mock'
    sources: list[str] = Field(default_factory=list)


class TimeRange(BaseModel):
    start: str
    end: str


class AvailabilityFilters(BaseModel):
    date: str
    party_size: int = 2
    time_range: TimeRange | None = None
    table_types: list[str] = Field(default_factory=list)
    special_requests: list[str] = Field(default_factory=list)

    @field_validator("date")
    @classmethod
    def _iso_date(cls, value: str) -> str:
        datetime.strptime(value, "%Y-%m-%d")
        return value

    @field_validator("party_size")
    @classmethod
    def _positive_party(cls, value: int) -> int:
        if value < 1:
            raise ValueError("party_size must be at least 1")
        return value


class ContactInfo(BaseModel):
    name: str
    email: str
    phone: str = ""


class BookingRequest(BaseModel):
    restaurant_id: str
    date: str  # YYYY-MM-DD
    time: str  # HH:MM
    party_size: int
    table_type: str | None = None
    special_requests: str | None = None
    customer_info: ContactInfo | None = None


class BookingResponse(BaseModel):
    success: bool
    booking_id: str | None = None
    confirmation_code: str | None = None
    error: str | None = None
    estimated_wait_time: int | None = None
    alternative_slots: list[TimeSlot] = Field(default_factory=list)
    source: str | None = None


class BookingStatus(BaseModel):
    booking_id: str
    status: Literal["confirmed", "pending", "cancelled", "completed"]
    request: BookingRequest | None = None
    confirmation_code: str | None = None
    updated_at: datetime = Field(default_factory=utc_now)


# Reviews


class ReviewReply(BaseModel):
    text: str
    author: str
    date: datetime


class ReviewData(BaseModel):
    """A single review; identity key is the provider-assigned ``id``."""

    id: str
    author: str = ""
    rating: int = 0
    comment: str = ""
    date: datetime
    source: str  # 'google' | 'yelp' | 'tripadvisor' | 'foursquare' | 'opentable'
    helpful: int = 0
    verified: bool = False
    response: ReviewReply | None = None


class DateRange(BaseModel):
    start: datetime | None = None
    end: datetime | None = None


class ReviewFilters(BaseModel):
    min_rating: int | None = None
    sources: list[str] = Field(default_factory=list)
    date_range: DateRange | None = None
    verified: bool | None = None
    keywords: list[str] = Field(default_factory=list)


Trend = Literal["up", "down", "stable"]


def empty_distribution() -> dict[int, int]:
    return {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}


class ReviewSummary(BaseModel):
    average_rating: float = 0.0
    total_reviews: int = 0
    rating_distribution: dict[int, int] = Field(default_factory=empty_distribution)
    recent_trend: Trend = "stable"


class ReviewResponse(BaseModel):
    reviews: list[ReviewData]
    summary: ReviewSummary
    total: int
    last_updated: datetime = Field(default_factory=utc_now)
    source: str


class SentimentBreakdown(BaseModel):
    """Percentages of reviews per sentiment bucket."""

    positive: int = 0
    neutral: int = 0
    negative: int = 0


class KeywordCount(BaseModel):
    word: str
    count: int


class ReviewAnalytics(BaseModel):
    average_rating: float = 0.0
    total_reviews: int = 0
    rating_distribution: dict[int, int] = Field(default_factory=empty_distribution)
    recent_trend: Trend = "stable"
    sentiment_analysis: SentimentBreakdown = Field(default_factory=SentimentBreakdown)
    top_keywords: list[KeywordCount] = Field(default_factory=list)


# Restaurants & menus


class RestaurantLocation(BaseModel):
    latitude: float
    longitude: float
    postcode: str = ""
    area: str = ""


class RestaurantImage(BaseModel):
    id: str
    url: str
    alt: str = ""
    source: str = ""
    is_primary: bool = False


class DayHours(BaseModel):
    open: str
    close: str
    is_closed: bool = False


class SpecialOffer(BaseModel):
    id: str
    title: str
    description: str = ""
    type: Literal["promotion", "event", "specialty"] = "promotion"
    valid_from: str | None = None
    valid_to: str | None = None
    discount_percent: float | None = None


class DataSourceInfo(BaseModel):
    primary: str
    last_sync: datetime = Field(default_factory=utc_now)
    reliability: int = 0  # 0-100


PriceRange = Literal["£", "££", "£££", "££££"]


class RestaurantData(BaseModel):
    """Restaurant record; identity key is the provider-assigned ``id``."""

    id: str
    name: str = ""
    address: str = ""
    phone: str = ""
    cuisine: str = ""
    description: str = ""
    rating: float = 0.0
    review_count: int = 0
    price_range: PriceRange = "££"
    location: RestaurantLocation
    images: list[RestaurantImage] = Field(default_factory=list)
    operating_hours: dict[str, DayHours] = Field(default_factory=dict)
    reviews: list[ReviewData] = Field(default_factory=list)
    special_offers: list[SpecialOffer] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=utc_now)
    data_source: DataSourceInfo | None = None


class RestaurantSearchFilters(BaseModel):
    cuisine: list[str] = Field(default_factory=list)
    price_range: list[str] = Field(default_factory=list)
    rating: float | None = None
    area: list[str] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)


class RestaurantSearchResult(BaseModel):
    restaurants: list[RestaurantData]
    total: int
    page: int
    limit: int
    total_pages: int
    filters: RestaurantSearchFilters = Field(default_factory=RestaurantSearchFilters)
    last_updated: datetime = Field(default_factory=utc_now)
    source: str = "merged"


class MenuItem(BaseModel):
    id: str
    name: str
    description: str = ""
    price: float
    dietary: list[str] = Field(default_factory=list)
    available: bool = True


class MenuCategory(BaseModel):
    id: str
    name: str
    items: list[MenuItem] = Field(default_factory=list)


class MenuData(BaseModel):
    restaurant_id: str
    categories: list[MenuCategory] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=utc_now)
    source: str


class DataFreshness(BaseModel):
    """How often each kind of data is refreshed from upstream."""

    availability: str = "real-time"
    menu: str = "daily"
    basic_info: str = "weekly"
    photos: str = "as-needed"
    reviews: str = "daily"
