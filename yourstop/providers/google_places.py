"""
Google Places data source for restaurant search and reviews.

API Documentation: https://developers.google.com/maps/documentation/places/web-service
Authenticates with a ``key`` query parameter instead of a bearer token.
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Any

from loguru import logger

from yourstop.models import (
    DataSourceInfo,
    RestaurantData,
    RestaurantImage,
    RestaurantLocation,
    RestaurantSearchFilters,
    ReviewData,
    SpecialOffer,
)
from yourstop.providers.base import BaseProvider

EXCLUDED_NAME_KEYWORDS = [
    "hotel", "inn", "lodge", "hostel", "motel", "b&b", "guesthouse", "accommodation",
]
EXCLUDED_TYPES = ["lodging", "tourist_attraction", "travel_agency"]
RESTAURANT_TYPES = ["restaurant", "food", "meal_takeaway", "cafe", "bar"]

NAME_CUISINES = ["indian", "italian", "chinese", "thai", "japanese", "french", "mexican"]

PRICE_LEVELS = {0: "£", 1: "££", 2: "£££", 3: "££££"}

POSTCODE_RE = re.compile(r"[A-Z]{1,2}[0-9][A-Z0-9]? [0-9][A-Z]{2}")


def is_restaurant(place: dict[str, Any]) -> bool:
    """Drop hotels and other non-restaurant establishments."""
    name = place.get("name", "").lower()
    types = [t.lower() for t in place.get("types", [])]

    if any(keyword in name for keyword in EXCLUDED_NAME_KEYWORDS):
        return False
    if any(t in types for t in EXCLUDED_TYPES):
        return False
    return any(t in types for t in RESTAURANT_TYPES)


def guess_cuisine(place: dict[str, Any]) -> str:
    types = place.get("types", [])
    if "meal_takeaway" in types:
        return "Takeaway"
    if "cafe" in types:
        return "Cafe"
    if "bar" in types:
        return "Bar & Grill"
    name = place.get("name", "").lower()
    for cuisine in NAME_CUISINES:
        if cuisine in name:
            return cuisine.title()
    return "Modern European"


def extract_postcode(address: str) -> str:
    match = POSTCODE_RE.search(address or "")
    return match.group(0) if match else ""


def extract_area(address: str) -> str:
    parts = (address or "").split(",")
    return parts[-2].strip() if len(parts) >= 2 else ""


def rating_offers(place_id: str, rating: float) -> list[SpecialOffer]:
    today = date.today()
    offers = []
    if rating >= 4.0:
        offers.append(
            SpecialOffer(
                id=f"offer_{place_id}_1",
                title="Happy Hour",
                description="Special prices on drinks 5-7 PM",
                type="promotion",
                valid_from=today.isoformat(),
                valid_to=(today + timedelta(days=30)).isoformat(),
                discount_percent=20,
            )
        )
    if rating >= 4.5:
        offers.append(
            SpecialOffer(
                id=f"offer_{place_id}_2",
                title="Weekend Special",
                description="Complimentary dessert with main course",
                type="event",
                valid_from=today.isoformat(),
                valid_to=(today + timedelta(days=7)).isoformat(),
            )
        )
    return offers


class GooglePlacesProvider(BaseProvider):
    """Google Places text search and place-details reviews."""

    SERVICE_ID = "google_places"

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    def auth_headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    async def search_restaurants(
        self, filters: RestaurantSearchFilters | None = None
    ) -> list[RestaurantData] | None:
        """Text search around the configured location, hotels filtered out."""
        settings = self.settings
        params = {
            "query": f"restaurant {settings.search_location_name} -hotel -inn -lodge -hostel",
            "location": f"{settings.search_latitude},{settings.search_longitude}",
            "radius": settings.search_radius_meters,
            "type": "restaurant",
            "key": self.api_key,
        }

        try:
            data = await self._get(
                "/textsearch/json", params=params, cache_ttl=settings.ttl("basic_info")
            )
            places = [p for p in data.get("results", []) if is_restaurant(p)]
            logger.info(
                f"Google Places returned {len(data.get('results', []))} places, "
                f"{len(places)} restaurants"
            )
            return [self._to_restaurant(place) for place in places]

        except Exception as e:
            logger.warning(f"Google Places search failed: {e}")
            return None

    async def fetch_reviews(self, restaurant_id: str) -> list[ReviewData] | None:
        params = {"place_id": restaurant_id, "fields": "reviews", "key": self.api_key}

        try:
            data = await self._get(
                "/details/json", params=params, cache_ttl=self.settings.ttl("reviews")
            )
            reviews = data.get("result", {}).get("reviews", [])
            return [self._to_review(restaurant_id, review) for review in reviews]

        except Exception as e:
            logger.warning(f"Google reviews failed for {restaurant_id}: {e}")
            return None

    def _photo_url(self, reference: str) -> str:
        return (
            f"{self.base_url}/photo?maxwidth=400"
            f"&photo_reference={reference}&key={self.api_key}"
        )

    def _to_restaurant(self, place: dict[str, Any]) -> RestaurantData:
        place_id = place["place_id"]
        address = place.get("formatted_address") or place.get("vicinity") or ""
        cuisine = guess_cuisine(place)
        rating = place.get("rating") or 4.0
        geo = place.get("geometry", {}).get("location", {})

        return RestaurantData(
            id=place_id,
            name=place.get("name", ""),
            address=address,
            phone=place.get("formatted_phone_number", ""),
            cuisine=cuisine,
            description=(place.get("editorial_summary") or {}).get("overview")
            or f"Experience authentic {cuisine} cuisine in the heart of London.",
            rating=rating,
            review_count=place.get("user_ratings_total", 0),
            price_range=PRICE_LEVELS.get(place.get("price_level"), "££"),
            location=RestaurantLocation(
                latitude=geo.get("lat", self.settings.search_latitude),
                longitude=geo.get("lng", self.settings.search_longitude),
                postcode=extract_postcode(address),
                area=extract_area(address),
            ),
            images=[
                RestaurantImage(
                    id=f"{place_id}_{index}",
                    url=self._photo_url(photo["photo_reference"]),
                    alt=f"{place.get('name', '')} - Photo {index + 1}",
                    source="google",
                    is_primary=index == 0,
                )
                for index, photo in enumerate(place.get("photos", []))
            ],
            special_offers=rating_offers(place_id, rating),
            data_source=DataSourceInfo(primary="google", reliability=85),
        )

    def _to_review(self, restaurant_id: str, review: dict[str, Any]) -> ReviewData:
        posted = datetime.fromtimestamp(review.get("time", 0), tz=timezone.utc)
        return ReviewData(
            id=f"google-{restaurant_id}-{review.get('time', 0)}",
            author=review.get("author_name", ""),
            rating=int(review.get("rating", 0)),
            comment=review.get("text", ""),
            date=posted,
            source="google",
            verified=True,
        )
