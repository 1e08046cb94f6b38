"""
In-memory transactional backends.

In production these would be a document database (one collection of
availability documents per artist, one bookings collection) using its
transaction or precondition primitives. The in-memory versions keep the
same compare-and-swap contract so the engine behaves identically.
"""

import threading
from collections import defaultdict
from datetime import date
from typing import Optional

from booking_engine.errors import ConcurrentModificationError
from booking_engine.logging_context import get_request_logger
from booking_engine.schemas.availability_schema import UnavailabilityEntry
from booking_engine.schemas.booking_schema import BookingRequest

logger = get_request_logger(__name__)

PartitionKey = tuple[str, date]


class _PartitionLocks:
    """One lock per partition key so unrelated keys never contend."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[PartitionKey, threading.Lock] = {}

    def __call__(self, key: PartitionKey) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock


class InMemoryAvailabilityBackend:
    """Thread-safe dict-backed AvailabilityBackend."""

    def __init__(self) -> None:
        self._entries: dict[PartitionKey, list[UnavailabilityEntry]] = {}
        self._versions: dict[PartitionKey, int] = defaultdict(int)
        self._lock_for = _PartitionLocks()

    def get_all(self, owner_id: str, day: date) -> tuple[list[UnavailabilityEntry], int]:
        key = (owner_id, day)
        with self._lock_for(key):
            return list(self._entries.get(key, [])), self._versions[key]

    def replace_all(
        self,
        owner_id: str,
        day: date,
        entries: list[UnavailabilityEntry],
        expected_version: int,
    ) -> int:
        key = (owner_id, day)
        with self._lock_for(key):
            current = self._versions[key]
            if current != expected_version:
                raise ConcurrentModificationError(
                    f"Availability for {owner_id} on {day} changed "
                    f"(expected v{expected_version}, found v{current})",
                    owner_id=owner_id,
                    date=day,
                )
            if entries:
                self._entries[key] = list(entries)
            else:
                self._entries.pop(key, None)
            self._versions[key] = current + 1
            return current + 1

    def list_keys_in_range(self, owner_id: str, start: date, end: date) -> list[date]:
        # Snapshot; a concurrent write may land after this read.
        keys = list(self._entries.keys())
        return sorted(day for owner, day in keys if owner == owner_id and start <= day <= end)

    def reset(self) -> None:
        """Clear all entries. Used by test fixtures for isolation."""
        self._entries.clear()
        self._versions.clear()


class InMemoryBookingBackend:
    """Thread-safe dict-backed BookingBackend."""

    def __init__(self) -> None:
        self._bookings: dict[str, BookingRequest] = {}
        self._versions: dict[PartitionKey, int] = defaultdict(int)
        self._lock_for = _PartitionLocks()

    def get(self, booking_id: str) -> Optional[BookingRequest]:
        return self._bookings.get(booking_id)

    def list_for_date(self, owner_id: str, day: date) -> tuple[list[BookingRequest], int]:
        key = (owner_id, day)
        with self._lock_for(key):
            bookings = [
                b for b in list(self._bookings.values())
                if b.owner_id == owner_id and b.event_date == day
            ]
            return bookings, self._versions[key]

    def list_for_owner(self, owner_id: str) -> list[BookingRequest]:
        bookings = [b for b in list(self._bookings.values()) if b.owner_id == owner_id]
        return sorted(bookings, key=lambda b: (b.event_date, b.created_at))

    def save(self, booking: BookingRequest, expected_version: int) -> int:
        key = (booking.owner_id, booking.event_date)
        with self._lock_for(key):
            current = self._versions[key]
            if current != expected_version:
                raise ConcurrentModificationError(
                    f"Bookings for {booking.owner_id} on {booking.event_date} changed "
                    f"(expected v{expected_version}, found v{current})",
                    owner_id=booking.owner_id,
                    date=booking.event_date,
                    booking_id=booking.id,
                )
            self._bookings[booking.id] = booking
            self._versions[key] = current + 1
            logger.debug("Saved booking %s (%s) at v%d", booking.id, booking.status.value, current + 1)
            return current + 1

    def reset(self) -> None:
        """Clear all bookings. Used by test fixtures for isolation."""
        self._bookings.clear()
        self._versions.clear()
