"""
Orchestration adapter layer for the booking front-end.

This module provides a UI-agnostic interface that wires storage, geocoding,
location reconciliation and the trip form together, so any frontend
(console, web handler, tests) can drive a booking without touching the
component modules directly.

NO console or terminal imports allowed in this file.
"""

from dataclasses import dataclass
from datetime import date
from typing import Sequence

from booking_draft.core import BookingForm, assemble
from booking_draft.types import BookingDraft, is_validation_error
from common.config import SEARCH_DEBOUNCE_MS
from common.errors import ValidationError
from common.logging_config import get_logger
from common.storage import BookingStorage
from common.types import PARKS, Park
from fuzzy_matcher.core import match_cities
from geocoding_client.core import GeocodingClient
from location_reconciler.core import LocationReconciler, LocationSnapshot
from location_reconciler.geolocation import Geolocator
from ticketing.core import FareQuote, ensure_ticket_code, quote

logger = get_logger("booking_app")


@dataclass
class SubmissionResult:
    """Outcome of submitting the booking form."""

    draft: BookingDraft | None = None
    error: ValidationError | None = None
    fare: FareQuote | None = None
    ticket_code: str | None = None

    @property
    def ok(self) -> bool:
        return self.draft is not None


class BookingSession:
    """
    One booking form session.

    Owns the reconciler (departure location and park) and the trip form;
    submit() validates, persists and prices the booking.
    """

    def __init__(
        self,
        storage: BookingStorage | None = None,
        geocoder: GeocodingClient | None = None,
        geolocator: Geolocator | None = None,
        parks: Sequence[Park] = PARKS,
        debounce_ms: int = SEARCH_DEBOUNCE_MS,
    ):
        self.storage = storage if storage is not None else BookingStorage()
        self.geocoder = geocoder if geocoder is not None else GeocodingClient()
        self.location = LocationReconciler(
            self.geocoder,
            storage=self.storage,
            geolocator=geolocator,
            parks=parks,
            debounce_ms=debounce_ms,
        )
        self.form = BookingForm()

    async def start(self) -> LocationSnapshot:
        """Mount the form: restore or auto-detect the departure location."""
        logger.debug("Starting booking session")
        return await self.location.mount()

    def destination_suggestions(self, query: str) -> list[str]:
        return match_cities(query)

    async def type_departure(self, text: str) -> LocationSnapshot:
        """Feed typed text and wait for the debounced suggestions."""
        self.location.on_text_input(text)
        await self.location.wait_idle()
        return self.location.snapshot()

    def submit(self, today: date | None = None) -> SubmissionResult:
        result = assemble(self.form, self.location.snapshot(), self.storage, today=today)
        if is_validation_error(result):
            return SubmissionResult(error=result)

        fare = quote(result)
        ticket_code = ensure_ticket_code(self.storage)
        logger.info(f"Booking ready: total {fare.total}, ticket {ticket_code}")
        return SubmissionResult(draft=result, fare=fare, ticket_code=ticket_code)

    async def close(self) -> None:
        """Tear down the form and release network resources."""
        self.location.teardown()
        await self.geocoder.aclose()


__all__ = [
    "BookingSession",
    "SubmissionResult",
]
