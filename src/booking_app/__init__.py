"""
Booking front-end for the bus ticket service.

This package wires the location pipeline into a booking flow:
Destination -> Departure location -> Take-off park -> Trip details ->
Booking summary with fare and ticket code.
"""

from booking_app.formatting import (
    format_booking_summary,
    format_error_for_display,
    format_location_status,
    format_park_options,
    format_price,
    format_ranked_parks,
    format_suggestions,
)
from booking_app.orchestration import BookingSession, SubmissionResult

__all__ = [
    # Orchestration
    "BookingSession",
    "SubmissionResult",
    # Formatting
    "format_booking_summary",
    "format_error_for_display",
    "format_location_status",
    "format_park_options",
    "format_price",
    "format_ranked_parks",
    "format_suggestions",
]
