"""
Per-owner unavailability store with replace-for-date writes.

An owner edits one date at a time: whatever was stored for that date is
discarded and the new selection written in its place, in one transaction
on the ``(owner_id, date)`` partition.

Usage:
    store = AvailabilityStore(InMemoryAvailabilityBackend())
    store.set_unavailability("artist-1", "2025-08-01", PartialDay.from_strings([("09:00", "12:00")]))
    store.get_unavailability("artist-1", "2025-08-01")
"""

import uuid
from datetime import date
from typing import Optional

from booking_engine.config import settings
from booking_engine.errors import InvalidRangeError
from booking_engine.logging_context import get_request_logger, request_scope
from booking_engine.schemas.availability_schema import (
    AllDay,
    PartialDay,
    UnavailabilityEntry,
    UnavailabilitySpec,
)
from booking_engine.storage.base import AvailabilityBackend
from booking_engine.utils import DateLike, parse_date, retry_on_conflict

logger = get_request_logger(__name__)


def _new_entry_id() -> str:
    return f"UA-{uuid.uuid4().hex[:10].upper()}"


class AvailabilityStore:
    """Reads and writes unavailability entries through a transactional backend."""

    def __init__(
        self,
        backend: AvailabilityBackend,
        max_attempts: Optional[int] = None,
        max_range_days: Optional[int] = None,
    ) -> None:
        self._backend = backend
        if max_attempts is None:
            max_attempts = settings.scheduling.max_transaction_retries
        if max_range_days is None:
            max_range_days = settings.scheduling.max_calendar_range_days
        self._max_attempts = max_attempts
        self._max_range_days = max_range_days

    def set_unavailability(
        self, owner_id: str, day: DateLike, spec: UnavailabilitySpec
    ) -> list[UnavailabilityEntry]:
        """
        Replace everything stored for ``(owner_id, day)`` with ``spec``.

        Returns the entries now stored. An empty PartialDay clears the date.
        """
        parsed = parse_date(day)
        entries = self._build_entries(owner_id, parsed, spec)

        def write() -> None:
            _, version = self._backend.get_all(owner_id, parsed)
            self._backend.replace_all(owner_id, parsed, entries, version)

        with request_scope():
            retry_on_conflict(write, self._max_attempts)
            logger.info(
                "Availability set for %s on %s: %s",
                owner_id, parsed, ", ".join(e.reason for e in entries) or "available",
            )
        return entries

    def clear_date(self, owner_id: str, day: DateLike) -> None:
        """Remove every entry for the date. Clearing an already clear date is a no-op."""
        parsed = parse_date(day)

        def write() -> None:
            existing, version = self._backend.get_all(owner_id, parsed)
            if not existing:
                return
            self._backend.replace_all(owner_id, parsed, [], version)

        with request_scope():
            retry_on_conflict(write, self._max_attempts)
            logger.info("Availability cleared for %s on %s", owner_id, parsed)

    def get_unavailability(self, owner_id: str, day: DateLike) -> list[UnavailabilityEntry]:
        entries, _ = self._backend.get_all(owner_id, parse_date(day))
        return entries

    def list_unavailable_dates(
        self, owner_id: str, from_date: DateLike, to_date: DateLike
    ) -> list[date]:
        """Ascending dates within ``[from_date, to_date]`` that have any entry."""
        start, end = parse_date(from_date), parse_date(to_date)
        if start > end:
            raise InvalidRangeError(
                f"Calendar range starts after it ends: {start} > {end}", owner_id=owner_id
            )
        span = (end - start).days + 1
        if span > self._max_range_days:
            raise InvalidRangeError(
                f"Calendar range of {span} days exceeds the limit of {self._max_range_days}",
                owner_id=owner_id,
            )
        return sorted(set(self._backend.list_keys_in_range(owner_id, start, end)))

    @staticmethod
    def _build_entries(
        owner_id: str, day: date, spec: UnavailabilitySpec
    ) -> list[UnavailabilityEntry]:
        if isinstance(spec, AllDay):
            return [
                UnavailabilityEntry(
                    entry_id=_new_entry_id(),
                    owner_id=owner_id,
                    unavailable_date=day,
                    is_all_day=True,
                )
            ]
        if isinstance(spec, PartialDay):
            return [
                UnavailabilityEntry(
                    entry_id=_new_entry_id(),
                    owner_id=owner_id,
                    unavailable_date=day,
                    is_all_day=False,
                    start_time=time_range.start_time,
                    end_time=time_range.end_time,
                )
                for time_range in spec.ranges
            ]
        raise TypeError(f"Unsupported availability spec: {spec!r}")
