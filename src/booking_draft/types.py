"""Type definitions for booking form fields and the assembled draft."""

from dataclasses import dataclass
from datetime import date
from typing import TypedDict

from common.errors import ValidationError
from common.types import LocationCandidate, Park


class BookingFormFields(TypedDict):
    """Raw form fields as entered by the user."""

    destination: str
    travel_date: date | None
    time: str | None
    ticket_count: int
    children_count: int


@dataclass(frozen=True)
class BookingDraft:
    """A validated booking, handed to the payment and ticket screens."""

    destination: str
    from_city: str
    from_details: LocationCandidate | None
    selected_park: Park
    travel_date: date
    time: str
    ticket_count: int
    children_count: int

    @property
    def adult_count(self) -> int:
        return self.ticket_count - self.children_count

    def to_record(self) -> dict:
        """Serialize into the stored `bookingData` shape."""
        return {
            "destination": self.destination,
            "from": self.from_city,
            "fromDetails": self.from_details.to_record() if self.from_details else None,
            "takeOffPark": self.selected_park.to_record(),
            "date": self.travel_date.isoformat(),
            "time": self.time,
            "tickets": self.ticket_count,
            "children": self.children_count,
        }

    @classmethod
    def from_record(cls, record: dict) -> "BookingDraft":
        details = record.get("fromDetails")
        return cls(
            destination=record["destination"],
            from_city=record["from"],
            from_details=LocationCandidate.from_record(details) if details else None,
            selected_park=Park.from_record(record["takeOffPark"]),
            travel_date=date.fromisoformat(record["date"]),
            time=record["time"],
            ticket_count=int(record["tickets"]),
            children_count=int(record.get("children", 0)),
        )


def is_validation_error(result: BookingDraft | ValidationError) -> bool:
    """Check if an assembly result is a validation error."""
    return isinstance(result, ValidationError)
