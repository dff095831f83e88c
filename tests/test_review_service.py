from datetime import datetime, timedelta, timezone

import pytest

from yourstop.models import DateRange, ReviewData, ReviewFilters
from yourstop.services.mock_data import MOCK_SOURCE
from yourstop.services.review_service import (
    ReviewService,
    filter_reviews,
    recent_trend,
    sentiment,
    summarize,
    top_keywords,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def review(rid: str, rating: int, days_ago: float = 1, **kwargs) -> ReviewData:
    kwargs.setdefault("source", "google")
    return ReviewData(id=rid, rating=rating, date=NOW - timedelta(days=days_ago), **kwargs)


class FakeReviewProvider:
    def __init__(self, service_id: str, reviews=None, fail: bool = False):
        self.service_id = service_id
        self._reviews = reviews
        self._fail = fail
        self.calls = 0

    def is_configured(self) -> bool:
        return True

    async def fetch_reviews(self, restaurant_id):
        self.calls += 1
        if self._fail:
            raise RuntimeError("down")
        return self._reviews


def test_summary_ignores_unrated_tips():
    reviews = [review("a", 5), review("b", 4), review("c", 0, source="foursquare")]

    summary = summarize(reviews, NOW)

    assert summary.average_rating == 4.5
    assert summary.total_reviews == 3
    assert summary.rating_distribution == {1: 0, 2: 0, 3: 0, 4: 1, 5: 1}


def test_summary_of_nothing():
    summary = summarize([], NOW)

    assert summary.average_rating == 0
    assert summary.recent_trend == "stable"


@pytest.mark.parametrize(
    "recent, previous, expected",
    [
        ([5, 5], [3, 3], "up"),
        ([2, 2], [4, 4], "down"),
        ([4, 4], [4, 4], "stable"),
        ([5], [], "stable"),
    ],
)
def test_recent_trend(recent, previous, expected):
    reviews = [review(f"r{i}", r, days_ago=5) for i, r in enumerate(recent)]
    reviews += [review(f"p{i}", r, days_ago=45) for i, r in enumerate(previous)]

    assert recent_trend(reviews, NOW) == expected


def test_filters():
    reviews = [
        review("a", 5, comment="Amazing curry", verified=True),
        review("b", 2, comment="Cold food", source="yelp"),
        review("c", 4, days_ago=400, comment="Lovely curry"),
    ]

    assert [r.id for r in filter_reviews(reviews, ReviewFilters(min_rating=4))] == ["a", "c"]
    assert [r.id for r in filter_reviews(reviews, ReviewFilters(sources=["YELP"]))] == ["b"]
    assert [r.id for r in filter_reviews(reviews, ReviewFilters(keywords=["curry"]))] == ["a", "c"]
    assert [r.id for r in filter_reviews(reviews, ReviewFilters(verified=True))] == ["a"]
    recent_only = ReviewFilters(date_range=DateRange(start=NOW - timedelta(days=30)))
    assert [r.id for r in filter_reviews(reviews, recent_only)] == ["a", "b"]


def test_sentiment_and_keywords():
    reviews = [
        review("a", 5, comment="Amazing food, great staff"),
        review("b", 1, comment="Terrible service, cold food"),
        review("c", 3, comment="Food was fine"),
        review("d", 5, comment="Delicious food"),
    ]

    breakdown = sentiment(reviews)
    keywords = top_keywords(reviews)

    assert (breakdown.positive, breakdown.neutral, breakdown.negative) == (50, 25, 25)
    assert keywords[0].word == "food"
    assert keywords[0].count == 4


@pytest.mark.asyncio
async def test_reviews_merged_newest_first(settings):
    google = FakeReviewProvider("google_places", [review("g1", 5, days_ago=3)])
    yelp = FakeReviewProvider("yelp", [review("y1", 4, days_ago=1, source="yelp")])
    broken = FakeReviewProvider("tripadvisor", fail=True)
    service = ReviewService(settings, providers=[google, yelp, broken], now=lambda: NOW)

    response = await service.get_reviews("r1")

    assert [r.id for r in response.reviews] == ["y1", "g1"]
    assert response.total == 2
    assert response.source == "google_places, yelp"
    assert response.summary.average_rating == 4.5


@pytest.mark.asyncio
async def test_reviews_capped_at_fifty_but_total_counts_all(settings):
    many = [review(f"g{i}", 4, days_ago=i + 1) for i in range(70)]
    service = ReviewService(
        settings, providers=[FakeReviewProvider("google_places", many)], now=lambda: NOW
    )

    response = await service.get_reviews("r1")

    assert len(response.reviews) == 50
    assert response.total == 70
    assert response.summary.total_reviews == 70


@pytest.mark.asyncio
async def test_mock_reviews_without_providers(settings):
    service = ReviewService(settings, providers=[], now=lambda: NOW)

    response = await service.get_reviews("r1")

    assert response.source == MOCK_SOURCE
    assert response.total >= 50
    dates = [r.date for r in response.reviews]
    assert dates == sorted(dates, reverse=True)


@pytest.mark.asyncio
async def test_merged_set_is_fetched_once_for_all_views(settings):
    provider = FakeReviewProvider("google_places", [review("g1", 5)])
    service = ReviewService(settings, providers=[provider], now=lambda: NOW)

    await service.get_reviews("r1")
    await service.get_reviews("r1", ReviewFilters(min_rating=4))
    summary = await service.get_review_summary("r1")
    analytics = await service.get_review_analytics("r1")

    assert provider.calls == 1
    assert summary.average_rating == 5.0
    assert analytics.total_reviews == 1
    assert analytics.sentiment_analysis.neutral == 100
