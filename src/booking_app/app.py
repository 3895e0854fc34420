"""
Console front-end for the bus booking form.

Walks the user through destination, departure location, take-off park and
trip details, then prints the booking summary and ticket code.

All business logic is delegated to the orchestration adapter layer.
"""

import asyncio
from datetime import date

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt

from booking_app.formatting import (
    format_booking_summary,
    format_error_for_display,
    format_location_status,
    format_park_options,
    format_ranked_parks,
    format_suggestions,
)
from booking_app.orchestration import BookingSession
from common.config import DEVICE_POSITION, MAX_TICKETS, PICKUP_TIME_SLOTS, STORE_PATH
from common.errors import ValidationError
from common.logging_config import get_logger
from common.storage import BookingStorage, JsonFileStore
from location_reconciler.geolocation import geolocator_from_setting

logger = get_logger("booking_app")
console = Console()


def _pick(count: int, prompt: str) -> int | None:
    """Ask for a 1-based choice; 0 means none."""
    choice = IntPrompt.ask(f"{prompt} (0 to skip)", default=0)
    if 1 <= choice <= count:
        return choice - 1
    return None


async def ask_departure(session: BookingSession) -> None:
    snapshot = session.location.snapshot()
    console.print(format_location_status(snapshot))
    if snapshot.is_resolved and Confirm.ask("Keep this departure location?", default=True):
        return

    while True:
        text = Prompt.ask("From")
        snapshot = await session.type_departure(text)
        console.print(format_suggestions(snapshot.suggestions))
        index = _pick(len(snapshot.suggestions), "Pick a suggestion") if snapshot.suggestions else None
        if index is not None:
            snapshot = session.location.select_suggestion(snapshot.suggestions[index])
        else:
            snapshot = session.location.leave_field()
        if snapshot.is_resolved:
            console.print(format_location_status(snapshot))
            return
        console.print("Please enter at least 2 characters.")


def ask_park(session: BookingSession) -> None:
    snapshot = session.location.snapshot()
    if snapshot.hint:
        console.print(f"[yellow]{snapshot.hint}[/yellow]")
    if snapshot.ranked_parks:
        console.print(format_ranked_parks(snapshot.ranked_parks, snapshot.selected_park))

    if snapshot.selected_park is not None and not Confirm.ask("Change take-off park?", default=False):
        return

    session.location.open_park_search()
    while True:
        query = Prompt.ask("Search parks", default="")
        parks = session.location.search_parks(query)
        console.print(format_park_options(parks))
        index = _pick(len(parks), "Pick a park") if parks else None
        if index is not None:
            session.location.select_park(parks[index])
            return
        if session.location.snapshot().selected_park is not None:
            session.location.cancel_park_search()
            return


def ask_trip_details(session: BookingSession) -> None:
    form = session.form
    while True:
        raw = Prompt.ask("Travel date (YYYY-MM-DD)")
        try:
            form.set_travel_date(date.fromisoformat(raw))
            break
        except ValueError:
            console.print("[red]Please use the YYYY-MM-DD format.[/red]")

    form.set_time(Prompt.ask("Pick-up time", choices=list(PICKUP_TIME_SLOTS)))
    form.set_ticket_count(IntPrompt.ask(f"No. of tickets (1-{MAX_TICKETS})", default=1))
    while True:
        try:
            form.set_children_count(IntPrompt.ask("Children?", default=0))
            break
        except ValidationError as e:
            console.print(f"[red]{e.message}[/red]")


async def run() -> int:
    session = BookingSession(
        storage=BookingStorage(JsonFileStore(STORE_PATH)),
        geolocator=geolocator_from_setting(DEVICE_POSITION),
    )
    try:
        await session.start()

        destination = Prompt.ask("Travelling to")
        matches = session.destination_suggestions(destination)
        if matches and matches[0].lower() != destination.strip().lower():
            if Confirm.ask(f"Did you mean {matches[0]}?", default=True):
                destination = matches[0]
        session.form.set_destination(destination)

        await ask_departure(session)
        ask_park(session)
        ask_trip_details(session)

        result = session.submit()
        if not result.ok:
            console.print(f"[red]{format_error_for_display(result.error)}[/red]")
            return 1

        console.print(Panel(format_booking_summary(result.draft, result.fare, result.ticket_code)))
        return 0
    finally:
        await session.close()


def main() -> None:
    raise SystemExit(asyncio.run(run()))


if __name__ == "__main__":
    main()
