from datetime import date

import pytest

from yourstop.settings import PROVIDER_KEY_NAMES, Settings


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    """Settings with every provider unconfigured (mock data only)."""
    return Settings(**{key: "" for key in PROVIDER_KEY_NAMES.values()})


@pytest.fixture
def settings_with_keys() -> Settings:
    return Settings(**{key: f"test-{key.lower()}" for key in PROVIDER_KEY_NAMES.values()})


@pytest.fixture
def today() -> date:
    return date(2026, 3, 10)
