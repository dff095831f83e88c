import os
from datetime import timedelta

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

load_dotenv()


PROVIDER_KEY_NAMES = {
    "google_places": "GOOGLE_PLACES_API_KEY",
    "yelp": "YELP_API_KEY",
    "tripadvisor": "TRIPADVISOR_API_KEY",
    "foursquare": "FOURSQUARE_API_KEY",
    "opentable": "OPENTABLE_API_KEY",
    "resy": "RESY_API_KEY",
    "toast": "TOAST_API_KEY",
    "square": "SQUARE_API_KEY",
}


class RateLimitRule(BaseModel):
    """Requests allowed per provider within a rolling window."""

    limit: int
    window_seconds: float

    @property
    def window(self) -> timedelta:
        return timedelta(seconds=self.window_seconds)


def _default_rate_limits() -> dict[str, RateLimitRule]:
    day = 24 * 60 * 60
    hour = 60 * 60
    return {
        "google_places": RateLimitRule(limit=100, window_seconds=day),
        "yelp": RateLimitRule(limit=5000, window_seconds=day),
        "tripadvisor": RateLimitRule(limit=1000, window_seconds=day),
        "foursquare": RateLimitRule(limit=950, window_seconds=day),
        "opentable": RateLimitRule(limit=1000, window_seconds=hour),
        "resy": RateLimitRule(limit=1000, window_seconds=hour),
        "toast": RateLimitRule(limit=1000, window_seconds=hour),
        "square": RateLimitRule(limit=1000, window_seconds=hour),
    }


class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Provider API keys
    google_places_api_key: str = Field(default="", alias="GOOGLE_PLACES_API_KEY")
    yelp_api_key: str = Field(default="", alias="YELP_API_KEY")
    tripadvisor_api_key: str = Field(default="", alias="TRIPADVISOR_API_KEY")
    foursquare_api_key: str = Field(default="", alias="FOURSQUARE_API_KEY")
    opentable_api_key: str = Field(default="", alias="OPENTABLE_API_KEY")
    resy_api_key: str = Field(default="", alias="RESY_API_KEY")
    toast_api_key: str = Field(default="", alias="TOAST_API_KEY")
    square_api_key: str = Field(default="", alias="SQUARE_API_KEY")

    # Provider base URLs
    google_places_base_url: str = Field(
        default="https://maps.googleapis.com/maps/api/place",
        alias="GOOGLE_PLACES_BASE_URL",
    )
    yelp_base_url: str = Field(
        default="https://api.yelp.com/v3/businesses", alias="YELP_BASE_URL"
    )
    tripadvisor_base_url: str = Field(
        default="https://api.content.tripadvisor.com/api/v1",
        alias="TRIPADVISOR_BASE_URL",
    )
    foursquare_base_url: str = Field(
        default="https://api.foursquare.com/v3/places", alias="FOURSQUARE_BASE_URL"
    )
    opentable_base_url: str = Field(
        default="https://platform.opentable.com/sync/v2", alias="OPENTABLE_BASE_URL"
    )
    resy_base_url: str = Field(default="https://api.resy.com/4", alias="RESY_BASE_URL")
    toast_base_url: str = Field(
        default="https://ws-api.toasttab.com", alias="TOAST_BASE_URL"
    )
    square_base_url: str = Field(
        default="https://connect.squareup.com/v2", alias="SQUARE_BASE_URL"
    )

    # Own API (batch endpoint lives here)
    api_base_url: str = Field(default="http://localhost:8000", alias="API_BASE_URL")
    batch_path: str = Field(default="/api/batch", alias="BATCH_PATH")
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")

    # Cache TTLs (seconds)
    availability_ttl_seconds: float = Field(default=5 * 60, alias="AVAILABILITY_TTL")
    booking_ttl_seconds: float = Field(default=30, alias="BOOKING_TTL")
    basic_info_ttl_seconds: float = Field(default=24 * 60 * 60, alias="BASIC_INFO_TTL")
    menu_ttl_seconds: float = Field(default=60 * 60, alias="MENU_TTL")
    reviews_ttl_seconds: float = Field(default=24 * 60 * 60, alias="REVIEWS_TTL")
    review_summary_ttl_seconds: float = Field(
        default=60 * 60, alias="REVIEW_SUMMARY_TTL"
    )
    review_analytics_ttl_seconds: float = Field(
        default=4 * 60 * 60, alias="REVIEW_ANALYTICS_TTL"
    )

    # Cache capacity and sweeping
    cache_max_size: int = Field(default=1000, alias="CACHE_MAX_SIZE")
    cache_sweep_interval_minutes: int = Field(default=10, alias="CACHE_SWEEP_INTERVAL")

    # Batching and request queue
    batch_max_size: int = Field(default=10, alias="BATCH_MAX_SIZE")
    batch_max_wait_ms: float = Field(default=100, alias="BATCH_MAX_WAIT_MS")
    queue_max_concurrent: int = Field(default=3, alias="QUEUE_MAX_CONCURRENT")
    request_timeout: float = Field(default=10.0, alias="REQUEST_TIMEOUT")

    # Search location
    search_location_name: str = Field(default="London, UK", alias="SEARCH_LOCATION")
    search_latitude: float = Field(default=51.5074, alias="SEARCH_LATITUDE")
    search_longitude: float = Field(default=-0.1278, alias="SEARCH_LONGITUDE")
    search_radius_meters: int = Field(default=10000, alias="SEARCH_RADIUS")

    # Rate limits
    rate_limits: dict[str, RateLimitRule] = Field(default_factory=_default_rate_limits)
    booking_attempts_limit: int = Field(default=5, alias="BOOKING_ATTEMPTS_LIMIT")
    booking_attempts_window_seconds: float = Field(
        default=10 * 60, alias="BOOKING_ATTEMPTS_WINDOW"
    )

    debug: bool = Field(default=False, alias="DEBUG")

    def get_api_key(self, name: str) -> str:
        """Return the API key stored under an env-style name, or ``""``."""
        field_name = name.lower()
        value = getattr(self, field_name, "")
        return value if isinstance(value, str) else ""

    def is_api_key_configured(self, name: str) -> bool:
        """A key counts as configured when set and not a template placeholder."""
        value = self.get_api_key(name).strip()
        return bool(value) and not value.lower().startswith("your_")

    def is_provider_configured(self, provider: str) -> bool:
        key_name = PROVIDER_KEY_NAMES.get(provider)
        return bool(key_name) and self.is_api_key_configured(key_name)

    def ttl(self, kind: str) -> timedelta:
        """Cache TTL for a data kind, e.g. ``ttl("availability")``."""
        return timedelta(seconds=getattr(self, f"{kind}_ttl_seconds"))

    @property
    def batch_max_wait(self) -> timedelta:
        return timedelta(milliseconds=self.batch_max_wait_ms)

    @property
    def batch_url(self) -> str:
        return f"{self.api_base_url.rstrip('/')}{self.batch_path}"


def load_settings(**overrides) -> Settings:
    """Build settings from the process environment (and ``.env``)."""
    data = {key: value for key, value in os.environ.items() if key.isupper()}
    data.update(overrides)
    return Settings.model_validate(data)
