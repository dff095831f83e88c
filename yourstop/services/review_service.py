"""
ReviewService - Reviews aggregated from Google, Yelp, TripAdvisor and Foursquare.
"""

import asyncio
import re
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Callable, Sequence

from loguru import logger

from yourstop.models import (
    KeywordCount,
    ReviewAnalytics,
    ReviewData,
    ReviewFilters,
    ReviewResponse,
    ReviewSummary,
    SentimentBreakdown,
    Trend,
    empty_distribution,
    utc_now,
)
from yourstop.providers.base import ReviewProvider
from yourstop.services.cache import TTLCache
from yourstop.services.deduplicator import RequestDeduplicator
from yourstop.services.merge import merge_reviews
from yourstop.services.mock_data import MOCK_SOURCE, generate_mock_reviews
from yourstop.settings import Settings

MAX_RETURNED_REVIEWS = 50
TREND_WINDOW = timedelta(days=30)
TREND_THRESHOLD = 0.2
TOP_KEYWORDS = 10

POSITIVE_WORDS = [
    "amazing", "excellent", "fantastic", "outstanding", "perfect",
    "wonderful", "great", "best", "love", "delicious",
]
NEGATIVE_WORDS = [
    "terrible", "awful", "disappointing", "bad", "horrible",
    "worst", "poor", "bland", "cold", "rude",
]


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def filter_reviews(reviews: Sequence[ReviewData], filters: ReviewFilters) -> list[ReviewData]:
    start = _as_utc(filters.date_range.start) if filters.date_range and filters.date_range.start else None
    end = _as_utc(filters.date_range.end) if filters.date_range and filters.date_range.end else None
    keywords = [k.lower() for k in filters.keywords]
    sources = {s.lower() for s in filters.sources}

    matched = []
    for review in reviews:
        if filters.min_rating and review.rating < filters.min_rating:
            continue
        if sources and review.source.lower() not in sources:
            continue
        if start and review.date < start:
            continue
        if end and review.date > end:
            continue
        if filters.verified is not None and review.verified != filters.verified:
            continue
        if keywords and not any(k in review.comment.lower() for k in keywords):
            continue
        matched.append(review)
    return matched


def _rated(reviews: Sequence[ReviewData]) -> list[ReviewData]:
    # Foursquare tips carry no rating
    return [r for r in reviews if 1 <= r.rating <= 5]


def _average(reviews: Sequence[ReviewData]) -> float:
    return sum(r.rating for r in reviews) / len(reviews) if reviews else 0.0


def recent_trend(reviews: Sequence[ReviewData], now: datetime) -> Trend:
    """Compare the last 30 days against the 30 days before them."""
    recent_start = now - TREND_WINDOW
    previous_start = now - 2 * TREND_WINDOW

    recent = [r for r in reviews if r.date >= recent_start]
    previous = [r for r in reviews if previous_start <= r.date < recent_start]
    if not recent or not previous:
        return "stable"

    recent_avg, previous_avg = _average(recent), _average(previous)
    if recent_avg > previous_avg + TREND_THRESHOLD:
        return "up"
    if recent_avg < previous_avg - TREND_THRESHOLD:
        return "down"
    return "stable"


def summarize(reviews: Sequence[ReviewData], now: datetime) -> ReviewSummary:
    rated = _rated(reviews)
    if not rated:
        return ReviewSummary(total_reviews=len(reviews))

    distribution = empty_distribution()
    for review in rated:
        distribution[review.rating] += 1

    return ReviewSummary(
        average_rating=round(_average(rated), 1),
        total_reviews=len(reviews),
        rating_distribution=distribution,
        recent_trend=recent_trend(rated, now),
    )


def sentiment(reviews: Sequence[ReviewData]) -> SentimentBreakdown:
    if not reviews:
        return SentimentBreakdown()

    counts = Counter()
    for review in reviews:
        comment = review.comment.lower()
        positive = sum(1 for word in POSITIVE_WORDS if word in comment)
        negative = sum(1 for word in NEGATIVE_WORDS if word in comment)
        if positive > negative:
            counts["positive"] += 1
        elif negative > positive:
            counts["negative"] += 1
        else:
            counts["neutral"] += 1

    total = len(reviews)
    return SentimentBreakdown(
        positive=round(counts["positive"] / total * 100),
        neutral=round(counts["neutral"] / total * 100),
        negative=round(counts["negative"] / total * 100),
    )


def top_keywords(reviews: Sequence[ReviewData], limit: int = TOP_KEYWORDS) -> list[KeywordCount]:
    words = Counter()
    for review in reviews:
        cleaned = re.sub(r"[^\w\s]", "", review.comment.lower())
        words.update(word for word in cleaned.split() if len(word) > 3)
    return [KeywordCount(word=word, count=count) for word, count in words.most_common(limit)]


class ReviewService:
    """
    Review aggregation, summaries and analytics.

    The merged review set of a restaurant is fetched once and cached; filtered
    views, summaries and analytics are derived from it and cached separately.
    """

    def __init__(
        self,
        settings: Settings,
        providers: Sequence[ReviewProvider],
        cache: TTLCache | None = None,
        now: Callable[[], datetime] = utc_now,
    ):
        self._settings = settings
        self._providers = list(providers)
        self._cache = cache or TTLCache(
            prefix="reviews_",
            max_size=settings.cache_max_size,
            default_ttl=settings.ttl("reviews"),
            debug=settings.debug,
        )
        self._dedup = RequestDeduplicator(cache=self._cache, debug=settings.debug)
        self._now = now

    @property
    def cache(self) -> TTLCache:
        return self._cache

    def configured_providers(self) -> list[ReviewProvider]:
        return [p for p in self._providers if p.is_configured()]

    async def get_reviews(
        self, restaurant_id: str, filters: ReviewFilters | None = None
    ) -> ReviewResponse:
        """Newest-first reviews matching the filters, capped at 50."""
        params = {"filters": filters.model_dump_json() if filters else None}
        key = self._cache.generate_key("reviews", restaurant_id, params=params)

        async def build() -> ReviewResponse:
            reviews, source = await self._collect(restaurant_id)
            if filters:
                reviews = filter_reviews(reviews, filters)
            return ReviewResponse(
                reviews=reviews[:MAX_RETURNED_REVIEWS],
                summary=summarize(reviews, self._now()),
                total=len(reviews),
                source=source,
            )

        return await self._dedup.dedupe(key, build, ttl=self._settings.ttl("reviews"))

    async def get_review_summary(self, restaurant_id: str) -> ReviewSummary:
        key = self._cache.generate_key("summary", restaurant_id)

        async def build() -> ReviewSummary:
            reviews, _ = await self._collect(restaurant_id)
            return summarize(reviews, self._now())

        return await self._dedup.dedupe(
            key, build, ttl=self._settings.ttl("review_summary")
        )

    async def get_review_analytics(self, restaurant_id: str) -> ReviewAnalytics:
        key = self._cache.generate_key("analytics", restaurant_id)

        async def build() -> ReviewAnalytics:
            reviews, _ = await self._collect(restaurant_id)
            summary = summarize(reviews, self._now())
            return ReviewAnalytics(
                average_rating=summary.average_rating,
                total_reviews=summary.total_reviews,
                rating_distribution=summary.rating_distribution,
                recent_trend=summary.recent_trend,
                sentiment_analysis=sentiment(reviews),
                top_keywords=top_keywords(reviews),
            )

        return await self._dedup.dedupe(
            key, build, ttl=self._settings.ttl("review_analytics")
        )

    async def _collect(self, restaurant_id: str) -> tuple[list[ReviewData], str]:
        """Merged, newest-first reviews plus a description of their sources."""
        key = self._cache.generate_key("all", restaurant_id)
        return await self._dedup.dedupe(
            key,
            lambda: self._load(restaurant_id),
            ttl=self._settings.ttl("reviews"),
        )

    async def _load(self, restaurant_id: str) -> tuple[list[ReviewData], str]:
        providers = self.configured_providers()
        reviews: list[ReviewData] = []
        sources: list[str] = []

        if providers:
            results = await asyncio.gather(
                *(p.fetch_reviews(restaurant_id) for p in providers),
                return_exceptions=True,
            )
            batches = []
            for provider, result in zip(providers, results):
                if isinstance(result, Exception):
                    logger.error(f"Provider '{provider.service_id}' raised: {result}")
                    continue
                if result:
                    batches.append(result)
                    sources.append(provider.service_id)
            reviews = merge_reviews(batches)

        if not reviews:
            logger.info(f"No provider reviews for {restaurant_id}, using mock reviews")
            reviews = generate_mock_reviews(restaurant_id, reference=self._now())
            sources = [MOCK_SOURCE]

        reviews.sort(key=lambda r: _as_utc(r.date), reverse=True)
        return reviews, ", ".join(sources)

    def clear_cache(self) -> None:
        self._cache.clear()
