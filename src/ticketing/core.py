"""
Ticketing

Fare quotes for a city pair and the six-character ticket code printed on
the issued ticket. The code is persisted on the stored booking so reloading
the ticket screen shows the same code.
"""

import secrets
from dataclasses import dataclass

from booking_draft.types import BookingDraft
from common.config import DEFAULT_TICKET_PRICE, FARE_TABLE, TICKET_CODE_ALPHABET, TICKET_CODE_LENGTH
from common.logging_config import get_logger
from common.storage import BookingStorage

logger = get_logger("ticketing")


@dataclass(frozen=True)
class FareQuote:
    """Price breakdown for a draft."""

    unit_price: int
    ticket_count: int

    @property
    def total(self) -> int:
        return self.unit_price * self.ticket_count


def get_ticket_price(from_city: str, destination: str) -> int:
    """Per-ticket fare for a city pair, falling back to the default fare."""
    key = f"{from_city.strip().lower()}-{destination.strip().lower()}"
    return FARE_TABLE.get(key, DEFAULT_TICKET_PRICE)


def quote(draft: BookingDraft) -> FareQuote:
    return FareQuote(
        unit_price=get_ticket_price(draft.from_city, draft.destination),
        ticket_count=draft.ticket_count,
    )


def generate_ticket_code(length: int = TICKET_CODE_LENGTH) -> str:
    """Cryptographically random alphanumeric code."""
    return "".join(secrets.choice(TICKET_CODE_ALPHABET) for _ in range(length))


def is_valid_ticket_code(code: object) -> bool:
    return (
        isinstance(code, str)
        and len(code) == TICKET_CODE_LENGTH
        and all(char in TICKET_CODE_ALPHABET for char in code)
    )


def ensure_ticket_code(storage: BookingStorage) -> str | None:
    """
    Return the stored booking's ticket code, issuing and persisting one if needed.

    Returns:
        The ticket code, or None when there is no stored booking
    """
    booking = storage.get_booking_data()
    if not isinstance(booking, dict):
        logger.warning("No booking data stored; cannot issue a ticket code")
        return None

    code = booking.get("ticketCode")
    if not is_valid_ticket_code(code):
        code = generate_ticket_code()
        booking["ticketCode"] = code
        storage.save_booking_data(booking)
        logger.info(f"Issued ticket code {code}")
    return code
