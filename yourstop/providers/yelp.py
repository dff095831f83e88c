"""
Yelp Fusion data source for restaurant search and reviews.

API Documentation: https://docs.developer.yelp.com/reference
"""

from typing import Any

from loguru import logger

from yourstop.models import (
    DataSourceInfo,
    RestaurantData,
    RestaurantImage,
    RestaurantLocation,
    RestaurantSearchFilters,
    ReviewData,
)
from yourstop.providers.base import BaseProvider, parse_timestamp

YELP_PRICES = {"£", "££", "£££", "££££"}


def map_yelp_price(price: str | None) -> str:
    if not price:
        return "££"
    # Yelp reports local currency symbols; count them
    normalized = "£" * len(price)
    return normalized if normalized in YELP_PRICES else "££"


class YelpProvider(BaseProvider):
    """Yelp business search and reviews."""

    SERVICE_ID = "yelp"
    SEARCH_LIMIT = 50

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    async def search_restaurants(
        self, filters: RestaurantSearchFilters | None = None
    ) -> list[RestaurantData] | None:
        params = {
            "location": self.settings.search_location_name,
            "categories": "restaurants",
            "limit": self.SEARCH_LIMIT,
        }

        try:
            data = await self._get(
                "/search", params=params, cache_ttl=self.settings.ttl("basic_info")
            )
            return [self._to_restaurant(b) for b in data.get("businesses", [])]

        except Exception as e:
            logger.warning(f"Yelp search failed: {e}")
            return None

    async def fetch_reviews(self, restaurant_id: str) -> list[ReviewData] | None:
        try:
            data = await self._get(
                f"/{restaurant_id}/reviews", cache_ttl=self.settings.ttl("reviews")
            )
            return [self._to_review(review) for review in data.get("reviews", [])]

        except Exception as e:
            logger.warning(f"Yelp reviews failed for {restaurant_id}: {e}")
            return None

    def _to_restaurant(self, business: dict[str, Any]) -> RestaurantData:
        location = business.get("location", {})
        coordinates = business.get("coordinates", {})
        categories = business.get("categories", [])

        return RestaurantData(
            id=business["id"],
            name=business.get("name", ""),
            address=", ".join(location.get("display_address", [])),
            phone=business.get("display_phone", ""),
            cuisine=", ".join(c["title"] for c in categories) or "Restaurant",
            rating=business.get("rating") or 0.0,
            review_count=business.get("review_count", 0),
            price_range=map_yelp_price(business.get("price")),
            location=RestaurantLocation(
                latitude=coordinates.get("latitude", self.settings.search_latitude),
                longitude=coordinates.get("longitude", self.settings.search_longitude),
                postcode=location.get("zip_code", ""),
                area=location.get("city", ""),
            ),
            images=[
                RestaurantImage(
                    id=f"{business['id']}_{index}",
                    url=url,
                    alt=f"{business.get('name', '')} - Photo {index + 1}",
                    source="yelp",
                    is_primary=index == 0,
                )
                for index, url in enumerate(
                    business.get("photos") or [business.get("image_url")]
                )
                if url
            ],
            data_source=DataSourceInfo(primary="yelp", reliability=80),
        )

    def _to_review(self, review: dict[str, Any]) -> ReviewData:
        return ReviewData(
            id=f"yelp-{review['id']}",
            author=review.get("user", {}).get("name", ""),
            rating=int(review.get("rating", 0)),
            comment=review.get("text", ""),
            date=parse_timestamp(review["time_created"]),
            source="yelp",
        )
