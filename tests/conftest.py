"""Shared test fixtures and helpers."""

from datetime import datetime

import pytest

from booking_engine.scheduling.availability_engine import AvailabilityEngine
from booking_engine.scheduling.availability_store import AvailabilityStore
from booking_engine.scheduling.booking_state_machine import BookingService
from booking_engine.scheduling.conflict_resolver import ConflictResolver
from booking_engine.schemas.availability_schema import TimeRange
from booking_engine.schemas.booking_schema import BookingEvent
from booking_engine.storage.memory import InMemoryAvailabilityBackend, InMemoryBookingBackend

ARTIST = "artist-1"
VENUE = "venue-1"


class FakeClock:
    """Settable clock for the booking service."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 6, 1, 12, 0))


@pytest.fixture
def availability_backend():
    return InMemoryAvailabilityBackend()


@pytest.fixture
def booking_backend():
    return InMemoryBookingBackend()


@pytest.fixture
def store(availability_backend):
    return AvailabilityStore(availability_backend, max_attempts=3)


@pytest.fixture
def engine(store):
    return AvailabilityEngine(store)


@pytest.fixture
def resolver(engine, booking_backend):
    return ConflictResolver(engine, booking_backend)


@pytest.fixture
def events():
    return []


@pytest.fixture
def service(resolver, booking_backend, clock, events):
    return BookingService(
        resolver,
        booking_backend,
        event_sink=events.append,
        now=clock,
        max_attempts=3,
        reject_conflicting_submissions=False,
    )


def tr(start: str, end: str) -> TimeRange:
    """Shorthand for TimeRange.parse."""
    return TimeRange.parse(start, end)


def collect_events(sink: list[BookingEvent]) -> list[tuple[str, str]]:
    """Reduce recorded events to (from, to) status pairs."""
    return [(e.from_status.value, e.to_status.value) for e in sink]
