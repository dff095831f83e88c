"""
Composition root: builds every service explicitly from one Settings object.
"""

from dataclasses import dataclass, field

import httpx
from loguru import logger

from yourstop.providers import (
    BaseProvider,
    FoursquareProvider,
    GooglePlacesProvider,
    OpenTableProvider,
    ResyProvider,
    SquareProvider,
    ToastProvider,
    TripAdvisorProvider,
    YelpProvider,
)
from yourstop.scheduler import CacheSweeper
from yourstop.services.availability_service import AvailabilityService
from yourstop.services.client import ServiceClient
from yourstop.services.restaurant_service import RestaurantService
from yourstop.services.review_service import ReviewService
from yourstop.settings import Settings, load_settings


@dataclass
class ServiceContainer:
    settings: Settings
    http_client: httpx.AsyncClient
    client: ServiceClient
    providers: dict[str, BaseProvider]
    availability: AvailabilityService
    reviews: ReviewService
    restaurants: RestaurantService
    sweeper: CacheSweeper
    owns_http_client: bool = field(default=True)

    def configured_providers(self) -> dict[str, bool]:
        return {name: p.is_configured() for name, p in self.providers.items()}

    async def close(self) -> None:
        self.sweeper.stop()
        await self.client.close()
        if self.owns_http_client:
            await self.http_client.aclose()
        logger.info("ServiceContainer closed")


def build_container(
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> ServiceContainer:
    """
    Wire the HTTP client, providers, aggregators and cache sweeper.

    Provider order inside each capability list is the merge order.
    """
    settings = settings or load_settings()
    owns_http_client = http_client is None
    http_client = http_client or httpx.AsyncClient(
        timeout=httpx.Timeout(settings.request_timeout), follow_redirects=True
    )

    client = ServiceClient(
        default_timeout=settings.request_timeout,
        default_cache_ttl=settings.ttl("availability"),
        cache_max_size=settings.cache_max_size,
        max_concurrent=settings.queue_max_concurrent,
        http_client=http_client,
        debug=settings.debug,
    )

    google = GooglePlacesProvider(client, settings)
    yelp = YelpProvider(client, settings)
    tripadvisor = TripAdvisorProvider(client, settings)
    foursquare = FoursquareProvider(client, settings)
    opentable = OpenTableProvider(client, settings)
    resy = ResyProvider(client, settings)
    toast = ToastProvider(client, settings)
    square = SquareProvider(client, settings)

    availability = AvailabilityService(settings, providers=[opentable, resy, toast])
    reviews = ReviewService(settings, providers=[google, yelp, tripadvisor, foursquare])
    restaurants = RestaurantService(
        settings,
        search_providers=[google, yelp, opentable],
        menu_providers=[toast, square],
        availability=availability,
    )

    sweeper = CacheSweeper(interval_minutes=settings.cache_sweep_interval_minutes)
    sweeper.register("client", client.cache)
    sweeper.register("availability", availability.cache)
    sweeper.register("reviews", reviews.cache)
    sweeper.register("restaurants", restaurants.cache)

    providers: dict[str, BaseProvider] = {
        p.service_id: p
        for p in (google, yelp, tripadvisor, foursquare, opentable, resy, toast, square)
    }
    configured = [name for name, p in providers.items() if p.is_configured()]
    logger.info(f"Configured providers: {configured or 'none (mock data only)'}")

    return ServiceContainer(
        settings=settings,
        http_client=http_client,
        client=client,
        providers=providers,
        availability=availability,
        reviews=reviews,
        restaurants=restaurants,
        sweeper=sweeper,
        owns_http_client=owns_http_client,
    )
