"""
Distance Ranker

Ranks take-off parks by great-circle distance from a reference location:
- Haversine distance in kilometers (Earth radius 6371 km)
- Coordinates validated before use (finite, within lat/lon ranges)
- Distances rounded to 2 decimals for display stability

Input: origin Coordinates + list of Park
Output: list of RankedPark sorted ascending by distance
"""

import math
from numbers import Real

import numpy as np
import pandas as pd

from common.config import DISTANCE_PRECISION, EARTH_RADIUS_KM
from common.errors import InvalidCoordinatesError
from common.logging_config import get_logger
from common.types import Coordinates, Park, RankedPark

logger = get_logger("park_ranker")


def _check(field: str, value: object, limit: float) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidCoordinatesError(field, value)
    number = float(value)
    if not math.isfinite(number) or not -limit <= number <= limit:
        raise InvalidCoordinatesError(field, value)
    return number


def validate_coordinates(latitude: object, longitude: object, prefix: str = "") -> tuple[float, float]:
    """Return (lat, lon) as floats or raise InvalidCoordinatesError naming the bad argument."""
    lat = _check(f"{prefix}latitude", latitude, 90.0)
    lon = _check(f"{prefix}longitude", longitude, 180.0)
    return lat, lon


def _haversine_km(lat1, lon1, lat2, lon2):
    """Vectorized great-circle distance; accepts scalars or numpy arrays."""
    lat1_rad = np.radians(lat1)
    lat2_rad = np.radians(lat2)
    delta_lat = np.radians(lat2 - lat1)
    delta_lon = np.radians(lon2 - lon1)

    a = np.sin(delta_lat / 2) ** 2 + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(delta_lon / 2) ** 2
    # Floating error can push a fractionally past 1 for antipodal points
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate the great-circle distance between two points in kilometers."""
    lat1, lon1 = validate_coordinates(lat1, lon1, prefix="origin_")
    lat2, lon2 = validate_coordinates(lat2, lon2, prefix="target_")

    if lat1 == lat2 and lon1 == lon2:
        return 0.0

    distance = float(_haversine_km(lat1, lon1, lat2, lon2))
    return round(distance, DISTANCE_PRECISION)


def parks_frame(parks: list[Park]) -> pd.DataFrame:
    """Tabulate parks, keeping each list position for stable ordering."""
    return pd.DataFrame(
        {
            "position": range(len(parks)),
            "latitude": [park.latitude for park in parks],
            "longitude": [park.longitude for park in parks],
        }
    )


def rank_by_distance(origin: Coordinates, parks: list[Park]) -> list[RankedPark]:
    """
    Rank parks by distance from the origin.

    Args:
        origin: Reference coordinates (validated)
        parks: Static park reference set

    Returns:
        RankedPark list sorted ascending by distance_km; ties keep input order
    """
    origin_lat, origin_lon = validate_coordinates(origin["latitude"], origin["longitude"], prefix="origin_")
    if not parks:
        return []

    frame = parks_frame(parks)
    distances = _haversine_km(
        origin_lat,
        origin_lon,
        frame["latitude"].to_numpy(dtype=float),
        frame["longitude"].to_numpy(dtype=float),
    )
    frame["distance_km"] = np.round(distances, DISTANCE_PRECISION)

    # Exact coordinate matches are pinned to zero
    same_point = (frame["latitude"] == origin_lat) & (frame["longitude"] == origin_lon)
    frame.loc[same_point, "distance_km"] = 0.0

    frame = frame.sort_values("distance_km", kind="stable")

    ranked = [
        RankedPark(park=parks[int(row.position)], distance_km=float(row.distance_km))
        for row in frame.itertuples(index=False)
    ]
    logger.debug(
        f"Ranked {len(ranked)} parks from ({origin_lat}, {origin_lon}); "
        f"nearest: {ranked[0].park.name} at {ranked[0].distance_km}km"
    )
    return ranked


def nearest_park(origin: Coordinates, parks: list[Park]) -> RankedPark | None:
    """Return the closest park, or None when there are no parks."""
    ranked = rank_by_distance(origin, parks)
    return ranked[0] if ranked else None
