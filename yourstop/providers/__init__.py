"""
Upstream restaurant data providers.
"""

from yourstop.providers.base import (
    AvailabilityProvider,
    BaseProvider,
    MenuProvider,
    ReviewProvider,
    SearchProvider,
)
from yourstop.providers.foursquare import FoursquareProvider
from yourstop.providers.google_places import GooglePlacesProvider
from yourstop.providers.opentable import OpenTableProvider
from yourstop.providers.resy import ResyProvider
from yourstop.providers.square import SquareProvider
from yourstop.providers.toast import ToastProvider
from yourstop.providers.tripadvisor import TripAdvisorProvider
from yourstop.providers.yelp import YelpProvider

__all__ = [
    "BaseProvider",
    "SearchProvider",
    "ReviewProvider",
    "AvailabilityProvider",
    "MenuProvider",
    "GooglePlacesProvider",
    "YelpProvider",
    "TripAdvisorProvider",
    "FoursquareProvider",
    "OpenTableProvider",
    "ResyProvider",
    "ToastProvider",
    "SquareProvider",
]
