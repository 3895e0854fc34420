"""
Tests for the booking form and draft assembly.

Tests:
- Children never exceed tickets, in either update order
- Validation order: first failing field wins
- Successful drafts are persisted under bookingData
"""

from datetime import date

import pytest
from conftest import LAGOS, park_named

from booking_draft.core import MESSAGES, BookingForm, assemble, validate
from booking_draft.types import BookingDraft, is_validation_error
from common.config import MAX_TICKETS
from common.errors import ValidationError
from common.types import LocationCandidate, LocationSource
from location_reconciler.core import LocationSnapshot, LocationState, ParkMode

TODAY = date(2026, 3, 1)
YABA = park_named("Yaba Bus Terminal")


def location(
    resolved: LocationCandidate | None = LAGOS,
    raw_text: str | None = None,
    park=YABA,
) -> LocationSnapshot:
    if resolved is not None:
        state = LocationState.USER_RESOLVED
        source = LocationSource.USER_SELECTED
        raw_text = resolved.display_name if raw_text is None else raw_text
    else:
        state = LocationState.USER_TYPING if raw_text else LocationState.EMPTY
        source = LocationSource.USER_TYPED_FREEFORM if raw_text else LocationSource.NONE
        raw_text = raw_text or ""
    return LocationSnapshot(
        state=state,
        raw_input_text=raw_text,
        resolved_location=resolved,
        source=source,
        suggestions=(),
        park_mode=ParkMode.PARK_AUTO,
        ranked_parks=(),
        selected_park=park,
        park_options=(),
        hint=None,
        auto_detect_suppressed=False,
    )


def complete_fields(**overrides):
    fields = {
        "destination": "Abuja",
        "travel_date": date(2026, 3, 10),
        "time": "9:00am",
        "ticket_count": 2,
        "children_count": 1,
    }
    fields.update(overrides)
    return fields


class TestBookingForm:
    """Tests for ticket and children counters."""

    def test_reducing_tickets_clamps_children(self):
        form = BookingForm(ticket_count=3, children_count=2)

        form.set_ticket_count(1)

        assert form.ticket_count == 1
        assert form.children_count == 1

    def test_children_above_tickets_rejected(self):
        form = BookingForm(ticket_count=2)

        with pytest.raises(ValidationError) as excinfo:
            form.set_children_count(3)

        assert excinfo.value.field == "children_count"
        assert excinfo.value.message == MESSAGES["children_count"]
        assert form.children_count == 0

    def test_negative_children_rejected(self):
        form = BookingForm()
        with pytest.raises(ValidationError):
            form.set_children_count(-1)

    @pytest.mark.parametrize("requested,expected", [(0, 1), (-4, 1), (5, 5), (MAX_TICKETS + 5, MAX_TICKETS)])
    def test_ticket_count_clamped(self, requested, expected):
        form = BookingForm()
        form.set_ticket_count(requested)
        assert form.ticket_count == expected

    def test_fields(self):
        form = BookingForm(destination="Kano", ticket_count=2, children_count=2)
        fields = form.fields()
        assert fields["destination"] == "Kano"
        assert fields["ticket_count"] == 2
        assert fields["children_count"] == 2
        assert fields["travel_date"] is None


class TestValidationOrder:
    """Tests for the first failing check."""

    @pytest.mark.parametrize(
        "overrides,snapshot_kwargs,field",
        [
            ({"destination": " "}, {"resolved": None, "park": None}, "destination"),
            ({}, {"resolved": None, "park": None}, "from"),
            ({"travel_date": None}, {"park": None}, "park"),
            ({"travel_date": None, "time": None}, {}, "date"),
            ({"time": None, "ticket_count": 0}, {}, "time"),
            ({"ticket_count": 0}, {}, "ticket_count"),
            ({"ticket_count": 1, "children_count": 2}, {}, "children_count"),
        ],
    )
    def test_first_failure_wins(self, overrides, snapshot_kwargs, field):
        error = validate(complete_fields(**overrides), location(**snapshot_kwargs), TODAY)
        assert error is not None
        assert error.field == field

    def test_messages(self):
        error = validate(complete_fields(destination=""), location(), TODAY)
        assert error == ValidationError("destination", "Destination city is required")

        error = validate(complete_fields(), location(resolved=None), TODAY)
        assert error.message == "Departure city is required"

    def test_past_date_rejected(self):
        error = validate(complete_fields(travel_date=date(2026, 2, 28)), location(), TODAY)
        assert error.field == "date"
        assert error.message == MESSAGES["date_past"]

    def test_today_accepted(self):
        assert validate(complete_fields(travel_date=TODAY), location(), TODAY) is None

    def test_unknown_time_slot_rejected(self):
        error = validate(complete_fields(time="7:15am"), location(), TODAY)
        assert error.field == "time"
        assert error.message == MESSAGES["time_slot"]

    def test_typed_city_without_resolution_accepted(self):
        snapshot = location(resolved=None, raw_text="Kano")
        assert validate(complete_fields(), snapshot, TODAY) is None

    def test_children_equal_to_tickets_accepted(self):
        assert validate(complete_fields(ticket_count=2, children_count=2), location(), TODAY) is None


class TestAssemble:
    """Tests for draft assembly and persistence."""

    def test_success_persists_booking(self, storage):
        form = BookingForm(
            destination=" Abuja ",
            travel_date=date(2026, 3, 10),
            time="6:00pm",
            ticket_count=3,
            children_count=1,
        )

        draft = assemble(form, location(), storage, today=TODAY)

        assert isinstance(draft, BookingDraft)
        assert not is_validation_error(draft)
        assert draft.destination == "Abuja"
        assert draft.from_city == "Lagos"
        assert draft.selected_park == YABA
        assert draft.adult_count == 2

        stored = storage.get_booking_data()
        assert stored["from"] == "Lagos"
        assert stored["destination"] == "Abuja"
        assert stored["takeOffPark"]["name"] == "Yaba Bus Terminal"
        assert stored["date"] == "2026-03-10"
        assert stored["tickets"] == 3
        assert storage.get_last_park() == YABA
        assert BookingDraft.from_record(stored) == draft

    def test_failure_persists_nothing(self, storage):
        result = assemble(complete_fields(destination=""), location(), storage, today=TODAY)

        assert is_validation_error(result)
        assert storage.get_booking_data() is None

    def test_children_clamped_then_assembled(self, storage):
        form = BookingForm(destination="Abuja", travel_date=date(2026, 3, 10), time="9:00am")
        form.set_ticket_count(3)
        form.set_children_count(2)
        form.set_ticket_count(1)

        draft = assemble(form, location(), storage, today=TODAY)

        assert draft.ticket_count == 1
        assert draft.children_count == 1

    def test_freeform_city_draft(self, storage):
        snapshot = location(resolved=None, raw_text=" Kano ", park=park_named("Kano Central Motor Park"))

        draft = assemble(complete_fields(), snapshot, storage, today=TODAY)

        assert draft.from_city == "Kano"
        assert draft.from_details is None
        assert storage.get_booking_data()["fromDetails"] is None
