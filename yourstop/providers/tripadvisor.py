"""
TripAdvisor Content API data source for reviews.

API Documentation: https://tripadvisor-content-api.readme.io/reference
"""

from typing import Any

from loguru import logger

from yourstop.models import ReviewData, ReviewReply
from yourstop.providers.base import BaseProvider, parse_timestamp


class TripAdvisorProvider(BaseProvider):
    """Location reviews from TripAdvisor."""

    SERVICE_ID = "tripadvisor"

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    async def fetch_reviews(self, restaurant_id: str) -> list[ReviewData] | None:
        try:
            data = await self._get(
                f"/location/{restaurant_id}/reviews",
                params={"language": "en"},
                cache_ttl=self.settings.ttl("reviews"),
            )
            return [self._to_review(review) for review in data.get("data", [])]

        except Exception as e:
            logger.warning(f"TripAdvisor reviews failed for {restaurant_id}: {e}")
            return None

    def _to_review(self, review: dict[str, Any]) -> ReviewData:
        reply = review.get("owner_response")
        return ReviewData(
            id=f"tripadvisor-{review['id']}",
            author=review.get("user", {}).get("username", ""),
            rating=int(review.get("rating", 0)),
            comment=review.get("text", ""),
            date=parse_timestamp(review["published_date"]),
            source="tripadvisor",
            helpful=review.get("helpful_votes", 0),
            response=ReviewReply(
                text=reply.get("text", ""),
                author=reply.get("author", "Owner"),
                date=parse_timestamp(reply["published_date"]),
            )
            if reply and reply.get("published_date")
            else None,
        )
