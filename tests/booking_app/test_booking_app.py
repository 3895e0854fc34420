"""
Tests for the booking front-end adapter layer and formatting.
"""

from datetime import date

import pytest
from conftest import LAGOS, FakeGeocoder, park_named

from booking_app import (
    BookingSession,
    format_booking_summary,
    format_error_for_display,
    format_location_status,
    format_park_options,
    format_price,
    format_ranked_parks,
    format_suggestions,
)
from booking_draft.types import BookingDraft
from common.errors import GeocodingUnavailable, GeolocationDenied, StorageUnavailable, ValidationError
from common.types import RankedPark
from location_reconciler.geolocation import FixedGeolocator
from ticketing.core import FareQuote, is_valid_ticket_code

YABA = park_named("Yaba Bus Terminal")


class TestFormatting:
    """Tests for display strings."""

    def test_format_price(self):
        assert format_price(40000) == "₦40,000"
        assert format_price(105000) == "₦105,000"

    def test_format_suggestions(self):
        assert format_suggestions([LAGOS]) == "1. Lagos"
        assert "Keep typing" in format_suggestions([])

    def test_format_ranked_parks_marks_selected(self):
        ranked = [RankedPark(YABA, 1.86), RankedPark(park_named("Ajah Motor Park"), 23.6)]
        text = format_ranked_parks(ranked, selected=YABA)
        lines = text.splitlines()

        assert lines[0] == "* 1. Yaba Bus Terminal (1.86 km) - Murtala Muhammed Way, Yaba"
        assert lines[1].startswith("  2. Ajah Motor Park (23.60 km)")

    def test_format_park_options(self):
        assert format_park_options([YABA]) == "1. Yaba Bus Terminal, Lagos - Murtala Muhammed Way, Yaba"
        assert format_park_options([]) == "No parks match that search."

    def test_format_booking_summary(self):
        draft = BookingDraft(
            destination="Abuja",
            from_city="Lagos",
            from_details=LAGOS,
            selected_park=YABA,
            travel_date=date(2026, 3, 10),
            time="9:00am",
            ticket_count=2,
            children_count=1,
        )
        text = format_booking_summary(draft, FareQuote(35000, 2), "AB12CD")

        assert "Traveling To: Abuja" in text
        assert "Date/Time: 10 Mar 2026 9:00am" in text
        assert "Passengers: Adult: 1 Children: 1" in text
        assert "Take-Off Park: Yaba Bus Terminal" in text
        assert "Total Payment: ₦70,000" in text
        assert "Ticket Code: AB12CD" in text


class TestErrorFormatting:
    """Tests for user-facing error messages."""

    def test_validation_error_shown_as_is(self):
        error = ValidationError("destination", "Destination city is required")
        assert format_error_for_display(error) == "Destination city is required"

    @pytest.mark.parametrize(
        "error,fragment",
        [
            (GeocodingUnavailable("boom"), "Location search is unavailable"),
            (GeolocationDenied("denied"), "couldn't detect your location"),
            (StorageUnavailable("full"), "couldn't be saved"),
            ("Connection reset by peer", "trouble connecting"),
            ("read timeout", "took too long"),
        ],
    )
    def test_known_errors(self, error, fragment):
        assert fragment in format_error_for_display(error)

    def test_unknown_error_not_exposed(self):
        message = format_error_for_display("KeyError: 'geonames'")
        assert "geonames" not in message

    def test_empty_error(self):
        assert "unexpected" in format_error_for_display(None)


class TestBookingSession:
    """Tests for an end-to-end booking session."""

    @pytest.mark.asyncio
    async def test_full_booking(self, storage, lagos_geocoder):
        session = BookingSession(storage=storage, geocoder=lagos_geocoder, debounce_ms=0)
        await session.start()

        assert session.destination_suggestions("abuja")[0] == "Abuja"
        session.form.set_destination("Abuja")

        snapshot = await session.type_departure("Lag")
        assert snapshot.suggestions == (LAGOS,)
        snapshot = session.location.select_suggestion(snapshot.suggestions[0])
        assert "Lagos" in format_location_status(snapshot)

        session.form.set_travel_date(date(2026, 3, 10))
        session.form.set_time("9:00am")
        session.form.set_ticket_count(2)

        result = session.submit(today=date(2026, 3, 1))

        assert result.ok
        assert result.draft.selected_park == YABA
        assert result.fare.total == 70000
        assert is_valid_ticket_code(result.ticket_code)
        assert storage.get_booking_data()["ticketCode"] == result.ticket_code

        await session.close()
        assert lagos_geocoder.closed

    @pytest.mark.asyncio
    async def test_submit_reports_first_error(self, storage):
        session = BookingSession(storage=storage, geocoder=FakeGeocoder(), debounce_ms=0)
        await session.start()

        result = session.submit(today=date(2026, 3, 1))

        assert not result.ok
        assert result.error.field == "destination"
        assert storage.get_booking_data() is None
        await session.close()

    @pytest.mark.asyncio
    async def test_start_auto_detects(self, storage, lagos_geocoder):
        session = BookingSession(
            storage=storage,
            geocoder=lagos_geocoder,
            geolocator=FixedGeolocator(6.47, 3.58),
        )

        snapshot = await session.start()

        assert format_location_status(snapshot) == "Detected: Ajah, Eti-Osa, Lagos"
        assert snapshot.selected_park.name == "Ajah Motor Park"
        await session.close()
