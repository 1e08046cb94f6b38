"""
Offline demo: plays the booking scenarios against the in-memory backends.

Wires the store, engine, resolver and booking service the way a host
application would, then prints each step and its outcome.

Usage:
    python main.py
    python main.py --scenario double-booking
"""

import argparse
import logging
from datetime import datetime

from booking_engine.config import settings
from booking_engine.errors import SchedulingError
from booking_engine.scheduling import (
    AvailabilityEngine,
    AvailabilityStore,
    BookingService,
    ConflictResolver,
)
from booking_engine.schemas.availability_schema import AllDay, PartialDay, TimeRange
from booking_engine.schemas.booking_schema import BookingEvent
from booking_engine.storage.memory import InMemoryAvailabilityBackend, InMemoryBookingBackend

logger = logging.getLogger(__name__)

GREEN = "\033[92m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

ARTIST = "artist-1"
VENUE = "venue-1"


class DemoSession:
    """Fresh engine wiring per scenario."""

    def __init__(self, now: datetime) -> None:
        self.store = AvailabilityStore(InMemoryAvailabilityBackend())
        self.engine = AvailabilityEngine(self.store)
        bookings = InMemoryBookingBackend()
        self.resolver = ConflictResolver(self.engine, bookings)
        self.service = BookingService(self.resolver, bookings, event_sink=self._on_event,
                                      now=lambda: now)

    @staticmethod
    def _on_event(event: BookingEvent) -> None:
        print(f"{DIM}  >> event: {event.booking_id} "
              f"{event.from_status.value} -> {event.to_status.value}{RESET}")

    def attempt(self, label: str, action) -> None:
        try:
            result = action()
        except SchedulingError as exc:
            print(f"{RED}  x {label}: {type(exc).__name__}: {exc}{RESET}")
            return
        print(f"{GREEN}  ok {label} -> {result.status.value}{RESET}")


def scenario_all_day(now: datetime) -> None:
    demo = DemoSession(now)
    demo.store.set_unavailability(ARTIST, "2025-07-04", AllDay())
    booking, verdict = demo.service.submit(ARTIST, VENUE, "2025-07-04",
                                           TimeRange.parse("19:00", "21:00"))
    print(f"  submitted {booking.id}: {verdict.reason}")
    demo.attempt("confirm", lambda: demo.service.confirm(booking.id, ARTIST))


def scenario_partial_day(now: datetime) -> None:
    demo = DemoSession(now)
    demo.store.set_unavailability(ARTIST, "2025-08-01", PartialDay.from_strings([("09:00", "12:00")]))
    afternoon, _ = demo.service.submit(ARTIST, VENUE, "2025-08-01", TimeRange.parse("13:00", "15:00"))
    morning, _ = demo.service.submit(ARTIST, VENUE, "2025-08-01", TimeRange.parse("10:00", "11:00"))
    demo.attempt("confirm 13:00 - 15:00", lambda: demo.service.confirm(afternoon.id, ARTIST))
    demo.attempt("confirm 10:00 - 11:00", lambda: demo.service.confirm(morning.id, ARTIST))


def scenario_double_booking(now: datetime) -> None:
    demo = DemoSession(now)
    first, _ = demo.service.submit(ARTIST, VENUE, "2025-09-10", TimeRange.parse("18:00", "20:00"))
    overlap, _ = demo.service.submit(ARTIST, "venue-2", "2025-09-10", TimeRange.parse("19:00", "21:00"))
    later, _ = demo.service.submit(ARTIST, "venue-3", "2025-09-10", TimeRange.parse("21:00", "23:00"))
    demo.attempt("confirm 18:00 - 20:00", lambda: demo.service.confirm(first.id, ARTIST))
    demo.attempt("confirm 19:00 - 21:00", lambda: demo.service.confirm(overlap.id, ARTIST))
    demo.attempt("confirm 21:00 - 23:00", lambda: demo.service.confirm(later.id, ARTIST))


def scenario_completion(now: datetime) -> None:
    demo = DemoSession(now)
    past, _ = demo.service.submit(ARTIST, VENUE, "2025-01-10", TimeRange.parse("18:00", "20:00"))
    future, _ = demo.service.submit(ARTIST, VENUE, "2099-01-10", TimeRange.parse("18:00", "20:00"))
    demo.service.confirm(past.id, ARTIST)
    demo.service.confirm(future.id, ARTIST)
    demo.attempt("complete past event", lambda: demo.service.complete(past.id, VENUE))
    demo.attempt("complete future event", lambda: demo.service.complete(future.id, VENUE))


SCENARIOS = {
    "all-day": scenario_all_day,
    "partial-day": scenario_partial_day,
    "double-booking": scenario_double_booking,
    "completion": scenario_completion,
}


def main() -> None:
    parser = argparse.ArgumentParser(description="Booking engine offline demo")
    parser.add_argument("--scenario", choices=sorted(SCENARIOS), default=None,
                        help="Run a single scenario (default: all)")
    args = parser.parse_args()

    now = datetime.now()
    names = [args.scenario] if args.scenario else list(SCENARIOS)
    logger.info("Running %d scenario(s) for '%s'", len(names), settings.service_name)
    for name in names:
        print(f"\n{BOLD}== {name} =={RESET}")
        SCENARIOS[name](now)


if __name__ == "__main__":
    main()
