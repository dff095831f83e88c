"""
RestaurantService - Restaurant listings and menus.

The merged listing is fetched from search providers once per filter set and
cached as a whole; filtering and pagination run over the cached dataset.
"""

import asyncio
import math
from typing import Sequence

from loguru import logger

from yourstop.exceptions import NotFoundError, ValidationError
from yourstop.models import (
    AvailabilityFilters,
    DataFreshness,
    MenuData,
    RealTimeAvailability,
    RestaurantData,
    RestaurantSearchFilters,
    RestaurantSearchResult,
)
from yourstop.providers.base import MenuProvider, SearchProvider
from yourstop.services.availability_service import AvailabilityService
from yourstop.services.cache import TTLCache
from yourstop.services.deduplicator import RequestDeduplicator
from yourstop.services.merge import merge_restaurants
from yourstop.services.mock_data import MOCK_SOURCE, mock_menu, mock_restaurants
from yourstop.settings import Settings

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 30
MAX_LIMIT = 100
DEFAULT_PARTY_SIZE = 2


def filter_restaurants(
    restaurants: Sequence[RestaurantData], filters: RestaurantSearchFilters | None
) -> list[RestaurantData]:
    if filters is None:
        return list(restaurants)

    cuisines = [c.lower() for c in filters.cuisine]
    areas = [a.lower() for a in filters.area]
    features = [f.lower() for f in filters.features]

    matched = []
    for restaurant in restaurants:
        if cuisines:
            own = [c.strip() for c in restaurant.cuisine.lower().split(",")]
            if not any(wanted in c for wanted in cuisines for c in own):
                continue
        if filters.price_range and restaurant.price_range not in filters.price_range:
            continue
        if filters.rating and restaurant.rating < filters.rating:
            continue
        if areas:
            area = restaurant.location.area.lower()
            if not any(wanted in area for wanted in areas):
                continue
        if features:
            titles = " ".join(o.title for o in restaurant.special_offers).lower()
            if not any(wanted in titles for wanted in features):
                continue
        matched.append(restaurant)
    return matched


class RestaurantService:
    """Restaurant search, detail and menu aggregation."""

    def __init__(
        self,
        settings: Settings,
        search_providers: Sequence[SearchProvider],
        menu_providers: Sequence[MenuProvider],
        availability: AvailabilityService,
        cache: TTLCache | None = None,
    ):
        self._settings = settings
        self._search_providers = list(search_providers)
        self._menu_providers = list(menu_providers)
        self._availability = availability
        self._cache = cache or TTLCache(
            prefix="restaurants_",
            max_size=settings.cache_max_size,
            default_ttl=settings.ttl("basic_info"),
            debug=settings.debug,
        )
        self._dedup = RequestDeduplicator(cache=self._cache, debug=settings.debug)

    @property
    def cache(self) -> TTLCache:
        return self._cache

    async def get_restaurants(
        self,
        filters: RestaurantSearchFilters | None = None,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
    ) -> RestaurantSearchResult:
        """Filtered, paginated listing over the cached merged dataset."""
        if page < 1:
            raise ValidationError("page must be at least 1", details={"page": page})
        if not 1 <= limit <= MAX_LIMIT:
            raise ValidationError(
                f"limit must be between 1 and {MAX_LIMIT}", details={"limit": limit}
            )

        restaurants, source = await self._dataset(filters)
        matched = filter_restaurants(restaurants, filters)

        start = (page - 1) * limit
        return RestaurantSearchResult(
            restaurants=matched[start : start + limit],
            total=len(matched),
            page=page,
            limit=limit,
            total_pages=math.ceil(len(matched) / limit),
            filters=filters or RestaurantSearchFilters(),
            source=source,
        )

    async def get_restaurant(self, restaurant_id: str) -> RestaurantData:
        restaurants, _ = await self._dataset(None)
        for restaurant in restaurants:
            if restaurant.id == restaurant_id:
                return restaurant
        raise NotFoundError(f"Restaurant {restaurant_id} not found")

    async def _dataset(
        self, filters: RestaurantSearchFilters | None
    ) -> tuple[list[RestaurantData], str]:
        params = {"filters": filters.model_dump_json() if filters else None}
        key = self._cache.generate_key("full", params=params)
        return await self._dedup.dedupe(
            key,
            lambda: self._load_restaurants(filters),
            ttl=self._settings.ttl("basic_info"),
        )

    async def _load_restaurants(
        self, filters: RestaurantSearchFilters | None
    ) -> tuple[list[RestaurantData], str]:
        providers = [p for p in self._search_providers if p.is_configured()]

        if providers:
            results = await asyncio.gather(
                *(p.search_restaurants(filters) for p in providers),
                return_exceptions=True,
            )
            batches = []
            sources = []
            for provider, result in zip(providers, results):
                if isinstance(result, Exception):
                    logger.error(f"Provider '{provider.service_id}' raised: {result}")
                    continue
                if result:
                    logger.info(
                        f"Provider '{provider.service_id}' returned {len(result)} restaurants"
                    )
                    batches.append(result)
                    sources.append(provider.service_id)

            restaurants = merge_restaurants(batches)
            if restaurants:
                return restaurants, ", ".join(sources)
            logger.warning("No search provider returned restaurants, using mock data")
        else:
            logger.info("No search providers configured, using mock restaurants")

        return mock_restaurants(), MOCK_SOURCE

    async def get_menu(self, restaurant_id: str) -> MenuData:
        """Menu from the first POS provider (in provider order) that has one."""
        key = self._cache.generate_key("menu", restaurant_id)
        return await self._dedup.dedupe(
            key,
            lambda: self._load_menu(restaurant_id),
            ttl=self._settings.ttl("menu"),
        )

    async def _load_menu(self, restaurant_id: str) -> MenuData:
        providers = [p for p in self._menu_providers if p.is_configured()]
        if providers:
            results = await asyncio.gather(
                *(p.fetch_menu(restaurant_id) for p in providers),
                return_exceptions=True,
            )
            for provider, result in zip(providers, results):
                if isinstance(result, Exception):
                    logger.error(f"Provider '{provider.service_id}' raised: {result}")
                    continue
                if result is not None and result.categories:
                    return result
            logger.warning(f"No POS provider returned a menu for {restaurant_id}")

        return mock_menu(restaurant_id)

    async def get_real_time_availability(
        self, restaurant_id: str, date: str
    ) -> RealTimeAvailability:
        return await self._availability.get_availability(
            restaurant_id, AvailabilityFilters(date=date, party_size=DEFAULT_PARTY_SIZE)
        )

    def get_data_freshness(self) -> DataFreshness:
        return DataFreshness()

    def clear_cache(self) -> None:
        self._cache.clear()
