import pytest

from priceglass.events import EventBus
from priceglass.models.country import CountryTable
from priceglass.storage import MemoryStorage


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def countries():
    return CountryTable()


@pytest.fixture
def bus():
    return EventBus()


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
