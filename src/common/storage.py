"""
Key-value persistence for booking records.

Mirrors browser local storage: string values under logical keys. The
BookingStorage wrapper JSON-serializes application records and never lets
a store failure escape; failed writes are kept in an in-memory overlay so
the session carries on.
"""

import json
import os
from typing import Any, Protocol

from common.config import (
    BOOKING_DATA_KEY,
    LAST_LOCATION_KEY,
    LAST_PARK_KEY,
    LOCATION_PERMISSION_KEY,
    LOGGED_IN_USER_KEY,
    USER_STORAGE_KEY,
)
from common.errors import StorageUnavailable
from common.logging_config import get_logger
from common.types import LocationCandidate, Park
from park_ranker.core import validate_coordinates

logger = get_logger("common_storage")


class KeyValueStore(Protocol):
    """String storage keyed by logical names."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class InMemoryStore:
    """Process-local store."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """Store persisted as a single JSON object on disk."""

    def __init__(self, path: str):
        self.path = path

    def _load(self) -> dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageUnavailable(f"Cannot read store at {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageUnavailable(f"Store at {self.path} is not a JSON object")
        return data

    def _dump(self, data: dict[str, str]) -> None:
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            raise StorageUnavailable(f"Cannot write store at {self.path}: {e}") from e

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._dump(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._dump(data)


_REMOVED = object()


class BookingStorage:
    """JSON record access over a KeyValueStore that never raises to callers."""

    def __init__(self, store: KeyValueStore | None = None):
        self.store = store if store is not None else InMemoryStore()
        # Values the backing store refused; reads prefer these
        self._overlay: dict[str, Any] = {}

    # Generic record operations

    def load(self, key: str) -> Any:
        if key in self._overlay:
            value = self._overlay[key]
            return None if value is _REMOVED else value
        try:
            raw = self.store.get(key)
        except Exception as e:
            logger.warning(f"Error reading '{key}' from storage: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            # Plain string values (e.g. loggedInUser) are stored unquoted
            return raw

    def save(self, key: str, value: Any) -> None:
        raw = value if isinstance(value, str) else json.dumps(value)
        try:
            self.store.set(key, raw)
            self._overlay.pop(key, None)
        except Exception as e:
            logger.warning(f"Error saving '{key}' to storage, keeping in memory: {e}")
            self._overlay[key] = value

    def delete(self, key: str) -> None:
        try:
            self.store.remove(key)
            self._overlay.pop(key, None)
        except Exception as e:
            logger.warning(f"Error clearing '{key}' from storage: {e}")
            self._overlay[key] = _REMOVED

    # User data operations

    def save_user(self, user: dict) -> None:
        self.save(USER_STORAGE_KEY, user)

    def get_user(self) -> dict | None:
        return self.load(USER_STORAGE_KEY)

    def clear_user(self) -> None:
        self.delete(USER_STORAGE_KEY)
        self.clear_logged_in_user()

    # Logged-in user operations

    def set_logged_in_user(self, phone: str) -> None:
        self.save(LOGGED_IN_USER_KEY, phone)

    def get_logged_in_user(self) -> str | None:
        value = self.load(LOGGED_IN_USER_KEY)
        return None if value is None else str(value)

    def clear_logged_in_user(self) -> None:
        self.delete(LOGGED_IN_USER_KEY)

    # Booking data operations

    def save_booking_data(self, booking: dict) -> None:
        self.save(BOOKING_DATA_KEY, booking)

    def get_booking_data(self) -> dict | None:
        return self.load(BOOKING_DATA_KEY)

    def clear_booking_data(self) -> None:
        self.delete(BOOKING_DATA_KEY)

    # Last-known location and park

    def save_last_location(self, location: LocationCandidate) -> None:
        self.save(LAST_LOCATION_KEY, location.to_record())

    def get_last_location(self) -> LocationCandidate | None:
        record = self.load(LAST_LOCATION_KEY)
        if not isinstance(record, dict):
            return None
        try:
            location = LocationCandidate.from_record(record)
            if location.has_coordinates:
                validate_coordinates(location.latitude, location.longitude)
            return location
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding malformed last location: {e}")
            return None

    def clear_last_location(self) -> None:
        self.delete(LAST_LOCATION_KEY)

    def save_last_park(self, park: Park) -> None:
        self.save(LAST_PARK_KEY, park.to_record())

    def get_last_park(self) -> Park | None:
        record = self.load(LAST_PARK_KEY)
        if not isinstance(record, dict):
            return None
        try:
            park = Park.from_record(record)
            validate_coordinates(park.latitude, park.longitude)
            return park
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding malformed last park: {e}")
            return None

    # Geolocation permission outcome

    def save_location_permission(self, outcome: str) -> None:
        self.save(LOCATION_PERMISSION_KEY, outcome)

    def get_location_permission(self) -> str | None:
        value = self.load(LOCATION_PERMISSION_KEY)
        return None if value is None else str(value)
