"""One-shot device position providers used for location auto-detection."""

from typing import Protocol

from common.errors import GeolocationDenied
from common.logging_config import get_logger
from common.types import Coordinates
from park_ranker.core import validate_coordinates

logger = get_logger("location_reconciler")


class Geolocator(Protocol):
    """Returns the current position or raises GeolocationDenied."""

    async def get_current_position(self) -> Coordinates: ...


class FixedGeolocator:
    """Reports a configured position, e.g. from a kiosk's known location."""

    def __init__(self, latitude: float, longitude: float):
        self.position: Coordinates = {"latitude": latitude, "longitude": longitude}

    async def get_current_position(self) -> Coordinates:
        return dict(self.position)


class UnavailableGeolocator:
    """Stands in when the host has no position source."""

    def __init__(self, reason: str = "Geolocation is not supported on this device."):
        self.reason = reason

    async def get_current_position(self) -> Coordinates:
        raise GeolocationDenied(self.reason)


def geolocator_from_setting(setting: str | None) -> FixedGeolocator | None:
    """
    Build a FixedGeolocator from a "lat,lon" setting.

    Returns None when the setting is empty or cannot be parsed, which leaves
    auto-detection off.
    """
    if not setting or not setting.strip():
        return None
    try:
        lat_text, lon_text = setting.split(",")
        latitude, longitude = validate_coordinates(float(lat_text), float(lon_text))
    except ValueError as e:
        logger.warning(f"Ignoring device position {setting!r}: {e}")
        return None
    return FixedGeolocator(latitude, longitude)
