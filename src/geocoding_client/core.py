"""
Geocoding Client

Resolves free text to location candidates and coordinates back to a place:
- GeoNames: keyed structured city search (autocomplete)
- Nominatim: free-text address search and reverse geocoding

Each provider has its own adapter that normalizes the provider-specific JSON
into LocationCandidate records. Provider failures never reach the caller:
search degrades to [] and reverse geocoding to None.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Callable, TypeVar

import httpx

from common.config import (
    CITY_FALLBACK_FIELDS,
    GEOCODING_TIMEOUT_S,
    GEONAMES_COUNTRY,
    GEONAMES_MAX_ROWS,
    GEONAMES_SEARCH_URL,
    GEONAMES_USERNAME,
    MIN_QUERY_LENGTH,
    NOMINATIM_COUNTRY_CODES,
    NOMINATIM_REVERSE_URL,
    NOMINATIM_SEARCH_URL,
    NOMINATIM_USER_AGENT,
)
from common.errors import GeocodingUnavailable, InvalidCoordinatesError
from common.logging_config import get_logger
from common.metrics import geocoding_duration, geocoding_failures
from common.types import LocationCandidate
from park_ranker.core import validate_coordinates

logger = get_logger("geocoding_client")

T = TypeVar("T")


def extract_city(address: dict[str, Any], fields: tuple[str, ...] = CITY_FALLBACK_FIELDS) -> str | None:
    """Pick the first non-empty address component from the fallback list."""
    for field in fields:
        value = address.get(field)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _parse_coordinates(item: dict[str, Any], lat_key: str, lon_key: str) -> tuple[float, float] | None:
    """Provider coordinates as floats, or None when missing, non-finite or out of range."""
    try:
        # Providers send coordinates as strings
        return validate_coordinates(float(item[lat_key]), float(item[lon_key]))
    except (KeyError, TypeError, ValueError) as e:
        logger.debug(f"Dropping provider item with unusable coordinates: {e}")
        return None


class ProviderAdapter(ABC):
    """Shared normalization interface for one geocoding provider."""

    name: str = "provider"

    @abstractmethod
    def search_request(self, query: str) -> tuple[str, dict[str, Any]]:
        """Return (url, params) for a text search."""

    @abstractmethod
    def parse_search(self, payload: Any) -> list[LocationCandidate]:
        """Normalize a search response, in provider relevance order."""

    def supports_reverse(self) -> bool:
        return False

    def reverse_request(self, latitude: float, longitude: float) -> tuple[str, dict[str, Any]]:
        raise NotImplementedError(f"{self.name} does not support reverse geocoding")

    def parse_reverse(self, payload: Any) -> LocationCandidate | None:
        raise NotImplementedError(f"{self.name} does not support reverse geocoding")

    def headers(self) -> dict[str, str]:
        return {"Accept": "application/json"}


class GeoNamesAdapter(ProviderAdapter):
    """Structured city/street provider (GeoNames searchJSON)."""

    name = "geonames"

    def __init__(
        self,
        username: str = GEONAMES_USERNAME,
        base_url: str = GEONAMES_SEARCH_URL,
        country: str = GEONAMES_COUNTRY,
        max_rows: int = GEONAMES_MAX_ROWS,
    ):
        self.username = username
        self.base_url = base_url
        self.country = country
        self.max_rows = max_rows

    def search_request(self, query: str) -> tuple[str, dict[str, Any]]:
        return self.base_url, {
            "name_startsWith": query,
            "country": self.country,
            "featureClass": "P",
            "maxRows": self.max_rows,
            "username": self.username,
        }

    def parse_search(self, payload: Any) -> list[LocationCandidate]:
        if "status" in payload:
            # GeoNames reports quota/auth errors in-band with HTTP 200
            raise GeocodingUnavailable(f"GeoNames error: {payload['status'].get('message', 'unknown')}")

        candidates = []
        for item in payload["geonames"]:
            city = item.get("name") or extract_city(item)
            coordinates = _parse_coordinates(item, "lat", "lng")
            if not city or coordinates is None:
                continue
            region = item.get("adminName1")
            display_name = f"{city}, {region}" if region and region != city else city
            latitude, longitude = coordinates
            candidates.append(
                LocationCandidate(
                    city=city,
                    street=None,
                    latitude=latitude,
                    longitude=longitude,
                    display_name=display_name,
                )
            )
        return candidates


class NominatimAdapter(ProviderAdapter):
    """Free-text address provider (OpenStreetMap Nominatim), search and reverse."""

    name = "nominatim"

    def __init__(
        self,
        search_url: str = NOMINATIM_SEARCH_URL,
        reverse_url: str = NOMINATIM_REVERSE_URL,
        country_codes: str = NOMINATIM_COUNTRY_CODES,
        user_agent: str = NOMINATIM_USER_AGENT,
    ):
        self.search_url = search_url
        self.reverse_url = reverse_url
        self.country_codes = country_codes
        self.user_agent = user_agent

    def headers(self) -> dict[str, str]:
        return {"Accept": "application/json", "User-Agent": self.user_agent}

    def search_request(self, query: str) -> tuple[str, dict[str, Any]]:
        return self.search_url, {
            "q": query,
            "format": "json",
            "addressdetails": 1,
            "countrycodes": self.country_codes,
            "limit": 10,
        }

    def _normalize(self, item: dict[str, Any]) -> LocationCandidate | None:
        address = item.get("address") or {}
        city = extract_city(address)
        coordinates = _parse_coordinates(item, "lat", "lon")
        if city is None or coordinates is None:
            return None
        road = address.get("road")
        house_number = address.get("house_number")
        street = f"{house_number} {road}" if road and house_number else road
        return LocationCandidate(
            city=city,
            street=street,
            latitude=coordinates[0],
            longitude=coordinates[1],
            display_name=item.get("display_name") or city,
        )

    def parse_search(self, payload: Any) -> list[LocationCandidate]:
        if not isinstance(payload, list):
            raise GeocodingUnavailable("Nominatim search returned a non-list payload")
        candidates = []
        for item in payload:
            candidate = self._normalize(item)
            if candidate is not None:
                candidates.append(candidate)
        return candidates

    def supports_reverse(self) -> bool:
        return True

    def reverse_request(self, latitude: float, longitude: float) -> tuple[str, dict[str, Any]]:
        return self.reverse_url, {
            "format": "json",
            "lat": latitude,
            "lon": longitude,
            "zoom": 10,
            "addressdetails": 1,
        }

    def parse_reverse(self, payload: Any) -> LocationCandidate | None:
        if "error" in payload:
            logger.info(f"Nominatim could not reverse geocode: {payload['error']}")
            return None
        return self._normalize(payload)


def _dedupe(candidates: list[LocationCandidate]) -> list[LocationCandidate]:
    """Drop repeated display names, keeping the first (most relevant) one."""
    seen: set[str] = set()
    unique = []
    for candidate in candidates:
        key = candidate.display_name.lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(candidate)
    return unique


class GeocodingClient:
    """
    Geocoding facade over one or more provider adapters.

    Search tries each search adapter in order and returns the first non-empty
    normalized result. Reverse geocoding uses the reverse adapter.
    """

    def __init__(
        self,
        search_adapters: list[ProviderAdapter] | None = None,
        reverse_adapter: ProviderAdapter | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = GEOCODING_TIMEOUT_S,
    ):
        nominatim = NominatimAdapter()
        self.search_adapters = search_adapters if search_adapters is not None else [GeoNamesAdapter(), nominatim]
        self.reverse_adapter = reverse_adapter if reverse_adapter is not None else nominatim
        self._client = client
        self._owns_client = client is None
        self.timeout = timeout

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GeocodingClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _fetch(
        self,
        adapter: ProviderAdapter,
        url: str,
        params: dict[str, Any],
        parse: Callable[[Any], T],
        operation: str,
    ) -> T:
        """GET a provider endpoint and parse it, converting every failure to GeocodingUnavailable."""
        started = time.perf_counter()
        attrs = {"provider": adapter.name, "operation": operation}
        try:
            response = await self._get_client().get(url, params=params, headers=adapter.headers())
            response.raise_for_status()
            payload = response.json()
            return parse(payload)
        except GeocodingUnavailable:
            raise
        except httpx.HTTPError as e:
            raise GeocodingUnavailable(f"{adapter.name} {operation} request failed: {e}") from e
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise GeocodingUnavailable(f"{adapter.name} {operation} returned a malformed response: {e}") from e
        finally:
            geocoding_duration.record((time.perf_counter() - started) * 1000, attributes=attrs)

    async def search(self, query: str) -> list[LocationCandidate]:
        """
        Search for locations matching free text.

        Args:
            query: User-typed text; shorter than MIN_QUERY_LENGTH is a no-op

        Returns:
            Normalized candidates in provider relevance order, or [] on failure
        """
        query = (query or "").strip()
        if len(query) < MIN_QUERY_LENGTH:
            return []

        for adapter in self.search_adapters:
            url, params = adapter.search_request(query)
            try:
                candidates = await self._fetch(adapter, url, params, adapter.parse_search, "search")
            except GeocodingUnavailable as e:
                logger.warning(f"Geocoding search degraded: {e}")
                geocoding_failures.add(1, attributes={"provider": adapter.name, "operation": "search"})
                continue
            if candidates:
                logger.debug(f"{adapter.name} returned {len(candidates)} candidates for '{query}'")
                return _dedupe(candidates)

        logger.info(f"No geocoding candidates for '{query}'")
        return []

    async def search_city_names(self, query: str) -> list[str]:
        """City names for an autocomplete list, de-duplicated in relevance order."""
        names: list[str] = []
        for candidate in await self.search(query):
            if candidate.city not in names:
                names.append(candidate.city)
        return names

    async def reverse_geocode(self, latitude: float, longitude: float) -> LocationCandidate | None:
        """Resolve coordinates to a place, or None when it cannot be determined."""
        try:
            validate_coordinates(latitude, longitude)
        except InvalidCoordinatesError as e:
            logger.warning(f"Reverse geocode skipped: {e.message}")
            return None

        adapter = self.reverse_adapter
        if adapter is None or not adapter.supports_reverse():
            logger.warning("No reverse geocoding provider configured")
            return None

        url, params = adapter.reverse_request(latitude, longitude)
        try:
            return await self._fetch(adapter, url, params, adapter.parse_reverse, "reverse")
        except GeocodingUnavailable as e:
            logger.warning(f"Reverse geocoding degraded: {e}")
            geocoding_failures.add(1, attributes={"provider": adapter.name, "operation": "reverse"})
            return None
