"""
Formatting utilities for the booking front-end.

Provides display formatting for location suggestions, ranked parks, the
booking summary and error messages. All functions are UI-agnostic and
return plain strings.

NO console or terminal imports allowed in this file.
"""

from booking_draft.types import BookingDraft
from common.config import CURRENCY_SYMBOL
from common.errors import (
    BookingError,
    GeocodingUnavailable,
    GeolocationDenied,
    StorageUnavailable,
    ValidationError,
)
from common.types import LocationCandidate, Park, RankedPark
from location_reconciler.core import LocationSnapshot, LocationState
from ticketing.core import FareQuote


def format_price(amount: int) -> str:
    """Format a naira amount, e.g. ₦40,000."""
    return f"{CURRENCY_SYMBOL}{amount:,}"


def format_suggestions(suggestions: tuple[LocationCandidate, ...] | list[LocationCandidate]) -> str:
    if not suggestions:
        return "No suggestions yet. Keep typing or press Enter to use what you typed."
    return "\n".join(f"{i}. {candidate.display_name}" for i, candidate in enumerate(suggestions, 1))


def format_ranked_parks(ranked: tuple[RankedPark, ...] | list[RankedPark], selected: Park | None = None) -> str:
    """
    Format parks nearest first, marking the selected one.

    Example output:
        * 1. Ajah Motor Park (23.61 km) - No 1. Tinubu Avenue, Ajah Bustop
    """
    if not ranked:
        return "No nearby parks to show."
    lines = []
    for i, item in enumerate(ranked, 1):
        marker = "*" if selected is not None and item.park == selected else " "
        lines.append(f"{marker} {i}. {item.park.name} ({item.distance_km:.2f} km) - {item.park.address}")
    return "\n".join(lines)


def format_park_options(parks: tuple[Park, ...] | list[Park]) -> str:
    if not parks:
        return "No parks match that search."
    return "\n".join(f"{i}. {park.name}, {park.city} - {park.address}" for i, park in enumerate(parks, 1))


def format_location_status(snapshot: LocationSnapshot) -> str:
    """One-line description of the departure field."""
    if snapshot.state == LocationState.AUTO_DETECTING:
        return "Detecting your location..."
    if snapshot.state == LocationState.AUTO_RESOLVED:
        return f"Detected: {snapshot.raw_input_text}"
    if snapshot.state == LocationState.USER_RESOLVED:
        return f"From: {snapshot.raw_input_text}"
    if snapshot.state == LocationState.USER_TYPING:
        return f"Typing: {snapshot.raw_input_text}"
    if snapshot.hint:
        return snapshot.hint
    return "Enter your departure city."


def format_booking_summary(draft: BookingDraft, fare: FareQuote | None = None, ticket_code: str | None = None) -> str:
    """Format the booking details screen as plain text."""
    street = draft.from_details.street if draft.from_details and draft.from_details.street else "-"
    park = draft.selected_park
    lines = [
        "## Booking Details",
        "",
        f"Traveling To: {draft.destination}",
        f"From: {draft.from_city}",
        f"Street: {street}",
        f"Date/Time: {draft.travel_date.strftime('%d %b %Y')} {draft.time}",
        f"Passengers: Adult: {draft.adult_count} Children: {draft.children_count}",
        "",
        f"Take-Off Park: {park.name}",
        f"{park.address}, {park.city}",
    ]
    if fare is not None:
        lines.extend(
            [
                "",
                f"Ticket Price: {format_price(fare.unit_price)}",
                f"Tickets x{fare.ticket_count}: {format_price(fare.total)}",
                f"Total Payment: {format_price(fare.total)}",
            ]
        )
    if ticket_code:
        lines.extend(["", f"Ticket Code: {ticket_code}"])
    return "\n".join(lines)


def format_error_for_display(error: BookingError | str | None) -> str:
    """
    Convert an internal error to a user-friendly message.

    Validation errors are shown as-is (they are already user-facing and name
    the field); degradations get a reassuring message that points at the
    manual fallback.
    """
    if not error:
        return "An unexpected error occurred. Please try again."

    if isinstance(error, ValidationError):
        return error.message
    if isinstance(error, GeocodingUnavailable):
        return "Location search is unavailable right now. You can still type your city."
    if isinstance(error, GeolocationDenied):
        return "We couldn't detect your location. Please enter your departure city."
    if isinstance(error, StorageUnavailable):
        return "Your booking couldn't be saved on this device, but you can continue."

    # Map known error patterns to friendly messages
    error_mappings = {
        "timeout": "The request took too long. Please try again.",
        "connection": "We're having trouble connecting. Please check your connection and try again.",
    }
    error_lower = str(error).lower()
    for pattern, friendly in error_mappings.items():
        if pattern in error_lower:
            return friendly

    # Default fallback - don't expose raw error
    return "An unexpected error occurred. Please try again or start over."
