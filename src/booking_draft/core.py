"""
Booking Draft Store

Holds the trip form fields and assembles them with the reconciled departure
location into a BookingDraft:
- BookingForm keeps children <= tickets on every mutation
- assemble() validates in a fixed order (first failure wins) and persists
  the draft on success

Output: BookingDraft, or the field-specific ValidationError that stopped it
"""

from datetime import date

from booking_draft.types import BookingDraft, BookingFormFields
from common.config import MAX_TICKETS, MIN_TEXT_LENGTH, PICKUP_TIME_SLOTS
from common.errors import ValidationError
from common.logging_config import get_logger
from common.storage import BookingStorage
from location_reconciler.core import LocationSnapshot

logger = get_logger("booking_draft")

# User-facing messages, keyed by form field
MESSAGES = {
    "destination": "Destination city is required",
    "from": "Departure city is required",
    "park": "Please select a take-off park",
    "date": "Travel date is required",
    "date_past": "Travel date cannot be in the past",
    "time": "Pick-up time is required",
    "time_slot": "Please choose one of the available pick-up times",
    "ticket_count": f"Number of tickets must be between 1 and {MAX_TICKETS}",
    "children_count": "Only one child per ticket booked is allowed",
    "children_negative": "Number of children cannot be negative",
}


class BookingForm:
    """Mutable trip form; children never exceed tickets after any setter."""

    def __init__(
        self,
        destination: str = "",
        travel_date: date | None = None,
        time: str | None = None,
        ticket_count: int = 1,
        children_count: int = 0,
    ):
        self.destination = destination
        self.travel_date = travel_date
        self.time = time
        self._ticket_count = 1
        self._children_count = 0
        self.set_ticket_count(ticket_count)
        self.set_children_count(children_count)

    @property
    def ticket_count(self) -> int:
        return self._ticket_count

    @property
    def children_count(self) -> int:
        return self._children_count

    def set_destination(self, destination: str) -> None:
        self.destination = destination

    def set_travel_date(self, travel_date: date | None) -> None:
        self.travel_date = travel_date

    def set_time(self, time: str | None) -> None:
        self.time = time

    def set_ticket_count(self, count: int) -> None:
        """Set tickets (clamped to 1..MAX_TICKETS), clamping children in the same step."""
        count = max(1, min(int(count), MAX_TICKETS))
        self._ticket_count = count
        if self._children_count > count:
            logger.debug(f"Children clamped from {self._children_count} to {count}")
            self._children_count = count

    def set_children_count(self, count: int) -> None:
        """
        Set the number of children.

        Raises:
            ValidationError: If count is negative or exceeds the ticket count;
                the previous value is kept.
        """
        count = int(count)
        if count < 0:
            raise ValidationError("children_count", MESSAGES["children_negative"])
        if count > self._ticket_count:
            raise ValidationError("children_count", MESSAGES["children_count"])
        self._children_count = count

    def fields(self) -> BookingFormFields:
        return {
            "destination": self.destination,
            "travel_date": self.travel_date,
            "time": self.time,
            "ticket_count": self._ticket_count,
            "children_count": self._children_count,
        }


def validate(
    fields: BookingFormFields,
    location: LocationSnapshot,
    today: date,
) -> ValidationError | None:
    """Return the first failing check, or None when the form is complete."""
    destination = (fields.get("destination") or "").strip()
    if len(destination) < MIN_TEXT_LENGTH:
        return ValidationError("destination", MESSAGES["destination"])

    if location.resolved_location is None and len(location.raw_input_text.strip()) < MIN_TEXT_LENGTH:
        return ValidationError("from", MESSAGES["from"])

    if location.selected_park is None:
        return ValidationError("park", MESSAGES["park"])

    travel_date = fields.get("travel_date")
    if travel_date is None:
        return ValidationError("date", MESSAGES["date"])
    if travel_date < today:
        return ValidationError("date", MESSAGES["date_past"])

    time = fields.get("time")
    if not time:
        return ValidationError("time", MESSAGES["time"])
    if time not in PICKUP_TIME_SLOTS:
        return ValidationError("time", MESSAGES["time_slot"])

    tickets = fields.get("ticket_count", 0)
    if not 1 <= tickets <= MAX_TICKETS:
        return ValidationError("ticket_count", MESSAGES["ticket_count"])

    children = fields.get("children_count", 0)
    if children < 0:
        return ValidationError("children_count", MESSAGES["children_negative"])
    if children > tickets:
        return ValidationError("children_count", MESSAGES["children_count"])

    return None


def assemble(
    form_fields: BookingFormFields | BookingForm,
    location: LocationSnapshot,
    storage: BookingStorage | None = None,
    today: date | None = None,
) -> BookingDraft | ValidationError:
    """
    Build and persist a BookingDraft from the form and the reconciled location.

    Args:
        form_fields: Form fields (or a BookingForm)
        location: Current reconciler snapshot
        storage: Where the draft is persisted on success
        today: Reference date for the "not in the past" check

    Returns:
        BookingDraft on success, otherwise the ValidationError for the first failing field
    """
    fields = form_fields.fields() if isinstance(form_fields, BookingForm) else form_fields
    today = today or date.today()

    error = validate(fields, location, today)
    if error is not None:
        logger.info(f"Booking draft rejected: {error.field} - {error.message}")
        return error

    draft = BookingDraft(
        destination=fields["destination"].strip(),
        from_city=location.from_city,
        from_details=location.resolved_location,
        selected_park=location.selected_park,
        travel_date=fields["travel_date"],
        time=fields["time"],
        ticket_count=fields["ticket_count"],
        children_count=fields["children_count"],
    )

    if storage is not None:
        storage.save_booking_data(draft.to_record())
        storage.save_last_park(draft.selected_park)

    logger.info(
        f"Booking draft assembled: {draft.from_city} -> {draft.destination} on "
        f"{draft.travel_date.isoformat()} {draft.time} from {draft.selected_park.name}"
    )
    return draft
