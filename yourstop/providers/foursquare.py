"""
Foursquare Places data source; tips are surfaced as unrated reviews.

API Documentation: https://docs.foursquare.com/developer/reference/place-tips
"""

from typing import Any

from loguru import logger

from yourstop.models import ReviewData
from yourstop.providers.base import BaseProvider, parse_timestamp


class FoursquareProvider(BaseProvider):
    """Place tips from Foursquare."""

    SERVICE_ID = "foursquare"
    TIP_LIMIT = 50

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    async def fetch_reviews(self, restaurant_id: str) -> list[ReviewData] | None:
        try:
            data = await self._get(
                f"/{restaurant_id}/tips",
                params={"limit": self.TIP_LIMIT, "sort": "NEWEST"},
                cache_ttl=self.settings.ttl("reviews"),
            )
            # The endpoint answers with a bare list
            tips = data if isinstance(data, list) else data.get("tips", [])
            return [self._to_review(tip) for tip in tips]

        except Exception as e:
            logger.warning(f"Foursquare tips failed for {restaurant_id}: {e}")
            return None

    def _to_review(self, tip: dict[str, Any]) -> ReviewData:
        # Tips carry no star rating
        return ReviewData(
            id=f"foursquare-{tip['id']}",
            comment=tip.get("text", ""),
            date=parse_timestamp(tip["created_at"]),
            source="foursquare",
            helpful=tip.get("agree_count", 0),
        )
