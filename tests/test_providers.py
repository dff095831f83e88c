import json

import httpx
import pytest
from respx import MockRouter

from yourstop.models import AvailabilityFilters, BookingRequest, ContactInfo
from yourstop.providers import (
    FoursquareProvider,
    GooglePlacesProvider,
    OpenTableProvider,
    ResyProvider,
    SquareProvider,
    ToastProvider,
    TripAdvisorProvider,
    YelpProvider,
)
from yourstop.providers.google_places import extract_area, extract_postcode, is_restaurant
from yourstop.providers.yelp import map_yelp_price
from yourstop.services.client import ServiceClient


@pytest.fixture
async def client():
    async with httpx.AsyncClient() as http_client:
        yield ServiceClient(http_client=http_client)


FILTERS = AvailabilityFilters(date="2026-03-12", party_size=2)


def test_configuration_follows_api_keys(settings, settings_with_keys):
    client = ServiceClient()
    assert not YelpProvider(client, settings).is_configured()
    assert YelpProvider(client, settings_with_keys).is_configured()
    placeholder = settings.model_copy(update={"yelp_api_key": "your_yelp_key"})
    assert not YelpProvider(client, placeholder).is_configured()


def test_google_helpers():
    assert is_restaurant({"name": "Kiln", "types": ["restaurant", "food"]})
    assert not is_restaurant({"name": "The Savoy Hotel", "types": ["restaurant"]})
    assert not is_restaurant({"name": "Rooms", "types": ["lodging", "restaurant"]})
    assert extract_postcode("58 Brewer St, London W1F 9TL, UK") == "W1F 9TL"
    assert extract_area("58 Brewer St, Soho, UK") == "Soho"
    assert map_yelp_price("$$$") == "£££"
    assert map_yelp_price(None) == "££"


@pytest.mark.asyncio
async def test_google_search_filters_hotels(client, settings_with_keys, respx_mock: MockRouter):
    route = respx_mock.get(
        host="maps.googleapis.com", path="/maps/api/place/textsearch/json"
    ).mock(
        return_value=httpx.Response(
            200,
            json={
                "results": [
                    {
                        "place_id": "p1",
                        "name": "Kiln",
                        "types": ["restaurant"],
                        "formatted_address": "58 Brewer St, Soho, London W1F 9TL",
                        "rating": 4.7,
                        "price_level": 1,
                        "geometry": {"location": {"lat": 51.51, "lng": -0.13}},
                    },
                    {"place_id": "p2", "name": "Grand Hotel", "types": ["lodging"]},
                ]
            },
        )
    )
    provider = GooglePlacesProvider(client, settings_with_keys)

    [kiln] = await provider.search_restaurants()

    assert kiln.id == "p1"
    assert kiln.price_range == "££"
    assert kiln.location.postcode == "W1F 9TL"
    assert {o.title for o in kiln.special_offers} == {"Happy Hour", "Weekend Special"}
    request = route.calls[0].request
    assert request.url.params["key"] == "test-google_places_api_key"
    assert "Authorization" not in request.headers


@pytest.mark.asyncio
async def test_google_reviews(client, settings_with_keys, respx_mock: MockRouter):
    respx_mock.get(host="maps.googleapis.com", path="/maps/api/place/details/json").mock(
        return_value=httpx.Response(
            200,
            json={
                "result": {
                    "reviews": [
                        {"author_name": "Ann", "rating": 5, "text": "Superb", "time": 1767225600}
                    ]
                }
            },
        )
    )

    [review] = await GooglePlacesProvider(client, settings_with_keys).fetch_reviews("p1")

    assert review.id == "google-p1-1767225600"
    assert review.date.year == 2026
    assert review.source == "google"


@pytest.mark.asyncio
async def test_yelp_reviews_use_bearer_token(client, settings_with_keys, respx_mock: MockRouter):
    route = respx_mock.get(host="api.yelp.com", path="/v3/businesses/b1/reviews").mock(
        return_value=httpx.Response(
            200,
            json={
                "reviews": [
                    {
                        "id": "x1",
                        "rating": 4,
                        "text": "Good",
                        "time_created": "2026-02-01 19:30:00",
                        "user": {"name": "Bob"},
                    }
                ]
            },
        )
    )

    [review] = await YelpProvider(client, settings_with_keys).fetch_reviews("b1")

    assert review.id == "yelp-x1"
    assert review.date.tzinfo is not None
    assert route.calls[0].request.headers["Authorization"] == "Bearer test-yelp_api_key"


@pytest.mark.asyncio
async def test_provider_failure_returns_none(client, settings_with_keys, respx_mock: MockRouter):
    respx_mock.get(host="api.yelp.com", path="/v3/businesses/search").mock(
        return_value=httpx.Response(500)
    )

    assert await YelpProvider(client, settings_with_keys).search_restaurants() is None


@pytest.mark.asyncio
async def test_tripadvisor_owner_response(client, settings_with_keys, respx_mock: MockRouter):
    respx_mock.get(
        host="api.content.tripadvisor.com", path="/api/v1/location/42/reviews"
    ).mock(
        return_value=httpx.Response(
            200,
            json={
                "data": [
                    {
                        "id": 7,
                        "rating": 5,
                        "text": "Lovely",
                        "published_date": "2026-01-05T10:00:00Z",
                        "user": {"username": "traveller"},
                        "owner_response": {
                            "text": "Thanks!",
                            "published_date": "2026-01-06T10:00:00Z",
                        },
                    }
                ]
            },
        )
    )

    [review] = await TripAdvisorProvider(client, settings_with_keys).fetch_reviews("42")

    assert review.id == "tripadvisor-7"
    assert review.response.text == "Thanks!"


@pytest.mark.asyncio
async def test_foursquare_tips_are_unrated(client, settings_with_keys, respx_mock: MockRouter):
    respx_mock.get(host="api.foursquare.com", path="/v3/places/fsq1/tips").mock(
        return_value=httpx.Response(
            200,
            json=[{"id": "t1", "text": "Try the bao", "created_at": "2026-01-02", "agree_count": 3}],
        )
    )

    [tip] = await FoursquareProvider(client, settings_with_keys).fetch_reviews("fsq1")

    assert tip.rating == 0
    assert tip.helpful == 3


@pytest.mark.asyncio
async def test_opentable_availability_and_booking(
    client, settings_with_keys, respx_mock: MockRouter
):
    respx_mock.post(
        host="platform.opentable.com", path="/sync/v2/restaurants/r1/availability"
    ).mock(
        return_value=httpx.Response(
            200,
            json={
                "times": [
                    {
                        "time": "19:00:00",
                        "available": True,
                        "table_types": [{"type": "booth", "capacity": 4}],
                    }
                ]
            },
        )
    )
    booking_route = respx_mock.post(
        host="platform.opentable.com", path="/sync/v2/reservations"
    ).mock(
        return_value=httpx.Response(
            200, json={"reservation_id": 991, "confirmation_number": "OT-1"}
        )
    )
    provider = OpenTableProvider(client, settings_with_keys)

    availability = await provider.fetch_availability("r1", FILTERS)
    booking = await provider.book(
        BookingRequest(
            restaurant_id="r1",
            date="2026-03-12",
            time="19:00",
            party_size=2,
            customer_info=ContactInfo(name="Ann", email="ann@example.com"),
        )
    )

    assert availability.source == "opentable"
    assert availability.time_slots[0].time == "19:00"
    assert availability.time_slots[0].max_party_size == 4
    assert booking.booking_id == "991"
    assert booking.confirmation_code == "OT-1"
    body = json.loads(booking_route.calls[0].request.content)
    assert body["customer"]["email"] == "ann@example.com"


@pytest.mark.asyncio
async def test_resy_slots(client, settings_with_keys, respx_mock: MockRouter):
    respx_mock.get(host="api.resy.com", path="/4/find").mock(
        return_value=httpx.Response(
            200,
            json={
                "results": {
                    "venues": [
                        {
                            "slots": [
                                {
                                    "date": {"start": "2026-03-12 19:30:00"},
                                    "config": {"type": "Dining Room"},
                                }
                            ]
                        }
                    ]
                }
            },
        )
    )

    availability = await ResyProvider(client, settings_with_keys).fetch_availability(
        "v1", FILTERS
    )

    [slot] = availability.time_slots
    assert slot.time == "19:30"
    assert slot.available
    assert slot.table_types[0].type == "dining room"


@pytest.mark.asyncio
async def test_toast_menu_sends_restaurant_header(
    client, settings_with_keys, respx_mock: MockRouter
):
    route = respx_mock.get(host="ws-api.toasttab.com", path="/menus/v2/menus").mock(
        return_value=httpx.Response(
            200,
            json={
                "menus": [
                    {
                        "menuGroups": [
                            {
                                "guid": "g1",
                                "name": "Mains",
                                "menuItems": [{"guid": "i1", "name": "Pie", "price": 14.5}],
                            }
                        ]
                    }
                ]
            },
        )
    )

    menu = await ToastProvider(client, settings_with_keys).fetch_menu("t1")

    assert menu.categories[0].items[0].price == 14.5
    assert route.calls[0].request.headers["Toast-Restaurant-External-ID"] == "t1"


@pytest.mark.asyncio
async def test_square_catalog_grouping(client, settings_with_keys, respx_mock: MockRouter):
    respx_mock.get(host="connect.squareup.com", path="/v2/catalog/list").mock(
        return_value=httpx.Response(
            200,
            json={
                "objects": [
                    {"type": "CATEGORY", "id": "c1", "category_data": {"name": "Drinks"}},
                    {
                        "type": "ITEM",
                        "id": "i1",
                        "item_data": {
                            "name": "Lemonade",
                            "category_id": "c1",
                            "variations": [
                                {"item_variation_data": {"price_money": {"amount": 350}}}
                            ],
                        },
                    },
                    {"type": "ITEM", "id": "i2", "item_data": {"name": "Mystery"}},
                ]
            },
        )
    )

    menu = await SquareProvider(client, settings_with_keys).fetch_menu("loc1")

    assert [(c.id, c.name) for c in menu.categories] == [
        ("c1", "Drinks"),
        ("uncategorized", "Other"),
    ]
    assert menu.categories[0].items[0].price == 3.5
