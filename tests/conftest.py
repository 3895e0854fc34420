"""Shared pytest fixtures and utilities for all tests."""

import asyncio

import pytest

from common.errors import GeolocationDenied
from common.storage import BookingStorage, InMemoryStore
from common.types import PARKS, LocationCandidate

LAGOS = LocationCandidate(city="Lagos", latitude=6.5244, longitude=3.3792, display_name="Lagos")
ABUJA = LocationCandidate(city="Abuja", latitude=9.0579, longitude=7.4951, display_name="Abuja, Federal Capital Territory")
AJAH = LocationCandidate(
    city="Lagos",
    latitude=6.4681,
    longitude=3.5850,
    display_name="Ajah, Eti-Osa, Lagos",
    street="Tinubu Avenue",
)


def park_named(name: str):
    return next(park for park in PARKS if park.name == name)


class FakeGeocoder:
    """In-process stand-in for GeocodingClient with per-query results and delays."""

    def __init__(
        self,
        results: dict[str, list[LocationCandidate]] | None = None,
        reverse: LocationCandidate | None = None,
        delays: dict[str, float] | None = None,
    ):
        self.results = {key.lower(): value for key, value in (results or {}).items()}
        self.reverse = reverse
        self.delays = {key.lower(): value for key, value in (delays or {}).items()}
        self.search_calls: list[str] = []
        self.reverse_calls: list[tuple[float, float]] = []
        self.closed = False

    async def search(self, query: str) -> list[LocationCandidate]:
        self.search_calls.append(query)
        delay = self.delays.get(query.lower(), 0.0)
        if delay:
            await asyncio.sleep(delay)
        return list(self.results.get(query.lower(), []))

    async def reverse_geocode(self, latitude: float, longitude: float) -> LocationCandidate | None:
        self.reverse_calls.append((latitude, longitude))
        return self.reverse

    async def aclose(self) -> None:
        self.closed = True


class CountingGeolocator:
    """Geolocator that records calls and can be held until released."""

    def __init__(self, latitude: float = 6.4700, longitude: float = 3.5800, hold: bool = False):
        self.position = {"latitude": latitude, "longitude": longitude}
        self.calls = 0
        self.release = asyncio.Event()
        if not hold:
            self.release.set()

    async def get_current_position(self):
        self.calls += 1
        await self.release.wait()
        return dict(self.position)


class DenyingGeolocator:
    """Geolocator that refuses every request and counts how often it was asked."""

    def __init__(self):
        self.calls = 0

    async def get_current_position(self):
        self.calls += 1
        raise GeolocationDenied("User denied Geolocation")


@pytest.fixture
def storage() -> BookingStorage:
    return BookingStorage(InMemoryStore())


@pytest.fixture
def lagos_geocoder() -> FakeGeocoder:
    return FakeGeocoder(
        results={
            "lag": [LAGOS],
            "lago": [LAGOS],
            "lagos": [LAGOS],
            "abuja": [ABUJA],
        },
        reverse=AJAH,
    )
