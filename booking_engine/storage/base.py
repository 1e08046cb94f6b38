"""
Persistence contracts for the scheduling engine.

Any document database or relational table keyed by ``(owner_id, date)``
can implement these. Each partition carries a version number that
increments on every write; writers pass the version they read and the
backend raises ConcurrentModificationError when it no longer matches.
"""

from datetime import date
from typing import Optional, Protocol

from booking_engine.schemas.availability_schema import UnavailabilityEntry
from booking_engine.schemas.booking_schema import BookingRequest


class AvailabilityBackend(Protocol):
    """Storage for unavailability entries, partitioned by owner and date."""

    def get_all(self, owner_id: str, day: date) -> tuple[list[UnavailabilityEntry], int]:
        """Return the entries for one partition and its current version."""
        ...

    def replace_all(
        self,
        owner_id: str,
        day: date,
        entries: list[UnavailabilityEntry],
        expected_version: int,
    ) -> int:
        """Atomically swap the partition contents and return the new version."""
        ...

    def list_keys_in_range(self, owner_id: str, start: date, end: date) -> list[date]:
        """Dates in ``[start, end]`` that hold at least one entry."""
        ...


class BookingBackend(Protocol):
    """Storage for booking requests, partitioned by owner and event date."""

    def get(self, booking_id: str) -> Optional[BookingRequest]:
        ...

    def list_for_date(self, owner_id: str, day: date) -> tuple[list[BookingRequest], int]:
        """Return the bookings in one partition and its current version."""
        ...

    def list_for_owner(self, owner_id: str) -> list[BookingRequest]:
        ...

    def save(self, booking: BookingRequest, expected_version: int) -> int:
        """Insert or overwrite a booking if its partition is still at ``expected_version``."""
        ...
