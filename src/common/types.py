"""Type definitions for the location pipeline and booking records."""

from dataclasses import dataclass
from enum import Enum
from typing import TypedDict

from common.config import PARK_RECORDS


class Coordinates(TypedDict):
    """Geographic coordinates."""

    latitude: float
    longitude: float


class LocationSource(str, Enum):
    """Where the current departure location came from."""

    NONE = "none"
    AUTO_DETECTED = "auto_detected"
    USER_SELECTED = "user_selected"
    USER_TYPED_FREEFORM = "user_typed_freeform"


@dataclass(frozen=True)
class LocationCandidate:
    """A normalized geocoding result.

    Coordinates are None only for a free-typed city that was never resolved.
    """

    city: str
    latitude: float | None
    longitude: float | None
    display_name: str
    street: str | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def coordinates(self) -> Coordinates | None:
        if not self.has_coordinates:
            return None
        return {"latitude": self.latitude, "longitude": self.longitude}

    def to_record(self) -> dict:
        """Serialize into the stored JSON shape."""
        return {
            "city": self.city,
            "street": self.street,
            "lat": self.latitude,
            "lon": self.longitude,
            "displayName": self.display_name,
        }

    @classmethod
    def from_record(cls, record: dict) -> "LocationCandidate":
        lat = record.get("lat")
        lon = record.get("lon")
        return cls(
            city=record["city"],
            street=record.get("street"),
            latitude=float(lat) if lat is not None else None,
            longitude=float(lon) if lon is not None else None,
            display_name=record.get("displayName") or record["city"],
        )


@dataclass(frozen=True)
class Park:
    """A take-off park (bus terminal)."""

    name: str
    city: str
    address: str
    latitude: float
    longitude: float

    def to_record(self) -> dict:
        return {
            "name": self.name,
            "city": self.city,
            "address": self.address,
            "lat": self.latitude,
            "lon": self.longitude,
        }

    @classmethod
    def from_record(cls, record: dict) -> "Park":
        return cls(
            name=record["name"],
            city=record["city"],
            address=record["address"],
            latitude=float(record["lat"]),
            longitude=float(record["lon"]),
        )


@dataclass(frozen=True)
class RankedPark:
    """A park paired with its distance from the reference location."""

    park: Park
    distance_km: float


def load_parks() -> list[Park]:
    """Build the static park reference set from configuration."""
    return [Park(*record) for record in PARK_RECORDS]


PARKS: tuple[Park, ...] = tuple(load_parks())
