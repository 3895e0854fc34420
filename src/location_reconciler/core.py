"""
Location Reconciliation State Machine

Owns the "From" location of the booking form. It merges three sources into
one consistent value:
- auto-detected device position (reverse geocoded once on mount)
- the persisted selection from a previous visit
- live user typing with debounced suggestions

States: EMPTY, AUTO_DETECTING, AUTO_RESOLVED, USER_TYPING, USER_RESOLVED, CLEARED
Park sub-state: PARK_AUTO (nearest park follows the location) or
PARK_MANUAL_SELECTION (the user picked or is picking a park).

The reconciler is the single writer for location state. Every entry point
enforces the invariants synchronously, and UI code reads immutable snapshots.
"""

import asyncio
import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from common.config import (
    GEOLOCATION_TIMEOUT_S,
    MIN_QUERY_LENGTH,
    PERMISSION_DENIED,
    PERMISSION_GRANTED,
    SEARCH_DEBOUNCE_MS,
)
from common.errors import GeolocationDenied, InvalidCoordinatesError
from common.logging_config import get_logger
from common.storage import BookingStorage
from common.types import PARKS, LocationCandidate, LocationSource, Park, RankedPark
from fuzzy_matcher.core import match_parks
from geocoding_client.core import GeocodingClient
from location_reconciler.geolocation import Geolocator
from park_ranker.core import rank_by_distance, validate_coordinates
from query_scheduler.core import DebouncedQueryScheduler, ScheduledQuery

logger = get_logger("location_reconciler")

SEARCH_KEY = "from"

HINT_MANUAL_ENTRY = "We couldn't detect your location. Please enter your departure city."
HINT_NO_COORDINATES = "We couldn't pinpoint that city, so nearby parks aren't ranked. Please choose a park."


class LocationState(str, Enum):
    EMPTY = "empty"
    AUTO_DETECTING = "auto_detecting"
    AUTO_RESOLVED = "auto_resolved"
    USER_TYPING = "user_typing"
    USER_RESOLVED = "user_resolved"
    CLEARED = "cleared"


class ParkMode(str, Enum):
    PARK_AUTO = "park_auto"
    PARK_MANUAL_SELECTION = "park_manual_selection"


RESOLVED_STATES = frozenset({LocationState.AUTO_RESOLVED, LocationState.USER_RESOLVED})


@dataclass(frozen=True)
class LocationSnapshot:
    """Read-only view of the reconciler at one point in time."""

    state: LocationState
    raw_input_text: str
    resolved_location: LocationCandidate | None
    source: LocationSource
    suggestions: tuple[LocationCandidate, ...]
    park_mode: ParkMode
    ranked_parks: tuple[RankedPark, ...]
    selected_park: Park | None
    park_options: tuple[Park, ...]
    hint: str | None
    auto_detect_suppressed: bool

    @property
    def from_city(self) -> str:
        """City handed to the booking draft: resolved city, else the typed text."""
        if self.resolved_location is not None:
            return self.resolved_location.city
        return self.raw_input_text.strip()

    @property
    def is_resolved(self) -> bool:
        return self.state in RESOLVED_STATES


Listener = Callable[[LocationSnapshot], None]


class LocationReconciler:
    """Explicit state machine for the departure location and take-off park."""

    def __init__(
        self,
        geocoder: GeocodingClient,
        storage: BookingStorage | None = None,
        geolocator: Geolocator | None = None,
        parks: Sequence[Park] = PARKS,
        debounce_ms: int = SEARCH_DEBOUNCE_MS,
        geolocation_timeout_s: float = GEOLOCATION_TIMEOUT_S,
    ):
        self.geocoder = geocoder
        self.storage = storage if storage is not None else BookingStorage()
        self.geolocator = geolocator
        self.parks: list[Park] = list(parks)
        self.geolocation_timeout_s = geolocation_timeout_s
        self.scheduler = DebouncedQueryScheduler(self._run_search, delay_ms=debounce_ms)

        self._state = LocationState.EMPTY
        self._raw_text = ""
        self._resolved: LocationCandidate | None = None
        self._source = LocationSource.NONE
        self._suggestions: tuple[LocationCandidate, ...] = ()

        self._park_mode = ParkMode.PARK_AUTO
        self._ranked: tuple[RankedPark, ...] = ()
        self._selected_park: Park | None = None
        self._park_options: tuple[Park, ...] = ()

        self._hint: str | None = None
        self._auto_detect_suppressed = False
        self._last_resolution: LocationCandidate | None = None
        self._detection_id = 0
        self._torn_down = False
        self._listeners: list[Listener] = []

    # Reads

    @property
    def state(self) -> LocationState:
        return self._state

    def snapshot(self) -> LocationSnapshot:
        return LocationSnapshot(
            state=self._state,
            raw_input_text=self._raw_text,
            resolved_location=self._resolved,
            source=self._source,
            suggestions=self._suggestions,
            park_mode=self._park_mode,
            ranked_parks=self._ranked,
            selected_park=self._selected_park,
            park_options=self._park_options,
            hint=self._hint,
            auto_detect_suppressed=self._auto_detect_suppressed,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a snapshot listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Internal state writes

    def _transition(
        self,
        state: LocationState,
        raw_text: str,
        resolved: LocationCandidate | None,
        source: LocationSource,
        suggestions: tuple[LocationCandidate, ...] = (),
    ) -> None:
        if state != self._state:
            logger.debug(f"Location state {self._state.value} -> {state.value}")
        self._state = state
        self._raw_text = raw_text
        self._resolved = resolved
        self._source = source
        self._suggestions = suggestions
        self._check_invariants()

    def _check_invariants(self) -> None:
        if (self._state in RESOLVED_STATES) != (self._resolved is not None):
            raise RuntimeError(
                f"resolved location must be set exactly in resolved states (state={self._state.value})"
            )
        if self._source in (LocationSource.AUTO_DETECTED, LocationSource.USER_SELECTED):
            if self._resolved is None or self._raw_text != self._resolved.display_name:
                raise RuntimeError("displayed text and resolved location disagree")

    def _notify(self) -> LocationSnapshot:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
        return snapshot

    # Mount and auto-detection

    async def mount(self) -> LocationSnapshot:
        """
        Initialize from the persisted selection, or auto-detect the position.

        Auto-detection runs only from EMPTY, with a geolocator, when the user
        has not cleared the field during this session and has not denied
        geolocation in an earlier one.
        """
        if self._torn_down:
            return self.snapshot()

        persisted = self.storage.get_last_location()
        if persisted is not None:
            self._restore(persisted)
            return self._notify()

        if self.geolocator is None or self._auto_detect_suppressed or self._state != LocationState.EMPTY:
            return self.snapshot()

        if self.storage.get_location_permission() == PERMISSION_DENIED:
            logger.info("Geolocation was denied earlier; asking for manual entry")
            self._hint = HINT_MANUAL_ENTRY
            return self._notify()

        await self._auto_detect()
        return self.snapshot()

    def _restore(self, location: LocationCandidate) -> None:
        source = LocationSource.USER_SELECTED if location.has_coordinates else LocationSource.USER_TYPED_FREEFORM
        self._resolve(location, LocationState.USER_RESOLVED, source)

        last_park = self.storage.get_last_park()
        known = next((park for park in self.parks if last_park and park.name == last_park.name), None)
        if known is not None:
            nearest = self._ranked[0].park if self._ranked else None
            self._selected_park = known
            if known != nearest:
                self._park_mode = ParkMode.PARK_MANUAL_SELECTION
        logger.info(f"Restored departure location '{location.display_name}'")

    def _detection_is_live(self, detection_id: int) -> bool:
        return (
            not self._torn_down
            and detection_id == self._detection_id
            and self._state == LocationState.AUTO_DETECTING
        )

    async def _auto_detect(self) -> None:
        self._detection_id += 1
        detection_id = self._detection_id
        self._hint = None
        self._transition(LocationState.AUTO_DETECTING, "", None, LocationSource.NONE)
        self._notify()

        try:
            position = await asyncio.wait_for(
                self.geolocator.get_current_position(), timeout=self.geolocation_timeout_s
            )
            latitude, longitude = validate_coordinates(position["latitude"], position["longitude"])
        except asyncio.TimeoutError:
            self._fail_detection(detection_id, "geolocation timed out")
            return
        except GeolocationDenied as e:
            self.storage.save_location_permission(PERMISSION_DENIED)
            self._fail_detection(detection_id, f"geolocation denied: {e}")
            return
        except InvalidCoordinatesError as e:
            self._fail_detection(detection_id, f"geolocation returned {e.message}")
            return
        except Exception as e:
            self._fail_detection(detection_id, f"geolocation failed: {e}")
            return

        self.storage.save_location_permission(PERMISSION_GRANTED)

        if not self._detection_is_live(detection_id):
            logger.debug("Discarding geolocation result: detection superseded")
            return

        candidate = await self.geocoder.reverse_geocode(latitude, longitude)

        if not self._detection_is_live(detection_id):
            logger.debug("Discarding reverse geocode result: detection superseded")
            return
        if candidate is None:
            self._fail_detection(detection_id, "reverse geocoding found no city")
            return

        # The device fix is more precise than the geocoder's place centroid
        candidate = dataclasses.replace(candidate, latitude=latitude, longitude=longitude)
        self._resolve(candidate, LocationState.AUTO_RESOLVED, LocationSource.AUTO_DETECTED)
        logger.info(f"Auto-detected departure location '{candidate.display_name}'")
        self._notify()

    def _fail_detection(self, detection_id: int, reason: str) -> None:
        if not self._detection_is_live(detection_id):
            return
        logger.info(f"Location auto-detection failed ({reason}); asking for manual entry")
        self._transition(LocationState.EMPTY, "", None, LocationSource.NONE)
        self._hint = HINT_MANUAL_ENTRY
        self._notify()

    # User input

    def on_text_input(self, text: str) -> LocationSnapshot:
        """Handle an edit of the From field."""
        if self._torn_down:
            return self.snapshot()
        text = text or ""

        if self._resolved is not None and text == self._resolved.display_name:
            # Re-typing the canonical text is not an edit
            return self.snapshot()

        if self._state == LocationState.AUTO_DETECTING:
            # A pending detection must not overwrite what the user is typing
            self._detection_id += 1

        query = text.strip()
        searchable = len(query) >= MIN_QUERY_LENGTH
        source = LocationSource.USER_TYPED_FREEFORM if query else LocationSource.NONE
        suggestions = self._suggestions if searchable and self._state == LocationState.USER_TYPING else ()

        self._transition(LocationState.USER_TYPING, text, None, source, suggestions)
        self._hint = None
        self._forget_ranking()

        if searchable:
            self.scheduler.schedule(SEARCH_KEY, query)
        else:
            self.scheduler.cancel(SEARCH_KEY)
        return self._notify()

    async def _run_search(self, request: ScheduledQuery) -> None:
        candidates = await self.geocoder.search(request.query)
        if not candidates:
            candidates = self._fallback_candidates(request.query)

        if not self.scheduler.accept(request):
            return
        if self._torn_down or self._state != LocationState.USER_TYPING:
            return

        self._suggestions = tuple(candidates)
        logger.debug(f"{len(candidates)} suggestions for '{request.query}'")
        self._notify()

    def _fallback_candidates(self, query: str) -> list[LocationCandidate]:
        """Offer matching parks as locations when the geocoders return nothing."""
        return [
            LocationCandidate(
                city=park.city,
                street=park.address,
                latitude=park.latitude,
                longitude=park.longitude,
                display_name=f"{park.name}, {park.city}",
            )
            for park in match_parks(query, self.parks)
        ]

    def select_suggestion(self, candidate: LocationCandidate) -> LocationSnapshot:
        """The user picked a suggestion."""
        if self._torn_down:
            return self.snapshot()
        self.scheduler.cancel(SEARCH_KEY)
        self._resolve(candidate, LocationState.USER_RESOLVED, LocationSource.USER_SELECTED)
        return self._notify()

    def leave_field(self) -> LocationSnapshot:
        """The From field lost focus; keep typed text as a coordinate-less city."""
        if self._torn_down or self._state != LocationState.USER_TYPING:
            return self.snapshot()
        city = self._raw_text.strip()
        if len(city) < MIN_QUERY_LENGTH:
            return self.snapshot()

        self.scheduler.cancel(SEARCH_KEY)
        candidate = LocationCandidate(city=city, latitude=None, longitude=None, display_name=self._raw_text)
        self._resolve(candidate, LocationState.USER_RESOLVED, LocationSource.USER_TYPED_FREEFORM)
        return self._notify()

    def clear(self) -> LocationSnapshot:
        """Explicit clear: empties the field and disables auto-detection for the session."""
        self.scheduler.cancel(SEARCH_KEY)
        self._detection_id += 1
        self._auto_detect_suppressed = True
        self._last_resolution = None
        self._hint = None
        self._forget_ranking()
        self.storage.clear_last_location()
        self._transition(LocationState.CLEARED, "", None, LocationSource.NONE)
        logger.info("Departure location cleared; auto-detection suppressed for this session")
        return self._notify()

    # Resolution and park ranking

    def _is_fresh(self, candidate: LocationCandidate) -> bool:
        previous = self._last_resolution
        if previous is None:
            return True
        return (
            previous.display_name.casefold() != candidate.display_name.casefold()
            or previous.latitude != candidate.latitude
            or previous.longitude != candidate.longitude
        )

    def _resolve(self, candidate: LocationCandidate, state: LocationState, source: LocationSource) -> None:
        ranked = None
        if candidate.has_coordinates:
            try:
                ranked = tuple(rank_by_distance(candidate.coordinates(), self.parks))
            except InvalidCoordinatesError as e:
                logger.warning(f"Ignoring coordinates of '{candidate.display_name}': {e.message}")
                candidate = dataclasses.replace(candidate, latitude=None, longitude=None)

        fresh = self._is_fresh(candidate)
        self._transition(state, candidate.display_name, candidate, source)
        self._last_resolution = candidate
        self._park_options = ()

        if ranked is not None:
            self._hint = None
            self.storage.save_last_location(candidate)
            self._apply_ranking(candidate, ranked, fresh)
        else:
            # Nothing to rank against; offer parks whose name or city matches instead
            self._ranked = ()
            self._hint = HINT_NO_COORDINATES
            self._park_options = tuple(match_parks(candidate.city, self.parks))
            if self._park_mode == ParkMode.PARK_AUTO:
                self._selected_park = None

    def _apply_ranking(self, candidate: LocationCandidate, ranked: tuple[RankedPark, ...], fresh: bool) -> None:
        self._ranked = ranked
        if fresh:
            self._park_mode = ParkMode.PARK_AUTO
        if self._park_mode == ParkMode.PARK_AUTO and self._ranked:
            nearest = self._ranked[0]
            self._selected_park = nearest.park
            logger.info(f"Nearest park to '{candidate.display_name}': {nearest.park.name} ({nearest.distance_km}km)")

    def _forget_ranking(self) -> None:
        self._ranked = ()
        self._park_options = ()
        if self._park_mode == ParkMode.PARK_AUTO:
            self._selected_park = None

    # Park selection sub-state

    def open_park_search(self) -> LocationSnapshot:
        """The user wants to change the park; auto-selection stops until a fresh location."""
        self._park_mode = ParkMode.PARK_MANUAL_SELECTION
        if self._ranked:
            self._park_options = tuple(ranked.park for ranked in self._ranked)
        elif not self._park_options:
            self._park_options = tuple(self.parks)
        return self._notify()

    def search_parks(self, query: str) -> list[Park]:
        """Fuzzy park search; an empty query lists parks nearest first when ranked."""
        if not query.strip() and self._ranked:
            results = [ranked.park for ranked in self._ranked]
        else:
            results = match_parks(query, self.parks)
        self._park_options = tuple(results)
        self._notify()
        return results

    def select_park(self, park: Park) -> LocationSnapshot:
        self._park_mode = ParkMode.PARK_MANUAL_SELECTION
        self._selected_park = park
        self._park_options = ()
        self.storage.save_last_park(park)
        logger.info(f"Park selected manually: {park.name}")
        return self._notify()

    def cancel_park_search(self) -> LocationSnapshot:
        """Close the park search; the manual sub-state is kept."""
        self._park_options = ()
        return self._notify()

    # Teardown

    async def wait_idle(self) -> None:
        """Wait for pending debounced searches to settle."""
        await self.scheduler.flush()

    def teardown(self) -> None:
        """Stop every pending search and detection; late callbacks become no-ops."""
        self._torn_down = True
        self._detection_id += 1
        self.scheduler.cancel_all()
        self._listeners.clear()
        logger.debug("Location reconciler torn down")
