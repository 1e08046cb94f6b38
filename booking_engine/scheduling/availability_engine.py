"""
Availability decisions for one owner on one date.

Reads the raw unavailability entries, skips stored windows that can't be
parsed, and answers whether a requested window is free. Entries for the
same date may overlap each other; they are merged for display and checked
one by one for conflicts.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from booking_engine.errors import InvalidRangeError
from booking_engine.logging_context import get_request_logger
from booking_engine.scheduling.availability_store import AvailabilityStore
from booking_engine.schemas.availability_schema import (
    ALL_DAY_REASON,
    TimeRange,
    UnavailabilityEntry,
)
from booking_engine.utils import DateLike, parse_date

logger = get_request_logger(__name__)


@dataclass
class DayAvailability:
    """Normalized view of one owner's date."""

    all_day: bool = False
    blocked: list[TimeRange] = field(default_factory=list)

    @property
    def is_clear(self) -> bool:
        return not self.all_day and not self.blocked

    @property
    def reason(self) -> str:
        if self.all_day:
            return ALL_DAY_REASON
        return ", ".join(str(r) for r in self.blocked)


@dataclass
class UnavailableOwner:
    owner_id: str
    reason: str


@dataclass
class DailyRoster:
    """Which owners can and cannot be booked on a date."""

    available: list[str] = field(default_factory=list)
    unavailable: list[UnavailableOwner] = field(default_factory=list)


def merge_ranges(ranges: Iterable[TimeRange]) -> list[TimeRange]:
    """Sort ranges and coalesce any that overlap or touch."""
    merged: list[TimeRange] = []
    for current in sorted(ranges):
        if merged and current.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = TimeRange(last.start, max(last.end, current.end))
        else:
            merged.append(current)
    return merged


class AvailabilityEngine:
    """Answers availability questions from an AvailabilityStore."""

    def __init__(self, store: AvailabilityStore) -> None:
        self._store = store

    def valid_entries(
        self, owner_id: str, day: DateLike
    ) -> list[tuple[UnavailabilityEntry, Optional[TimeRange]]]:
        """Stored entries paired with their parsed window (None for all-day)."""
        parsed = parse_date(day)
        pairs = []
        for entry in self._store.get_unavailability(owner_id, parsed):
            try:
                pairs.append((entry, entry.time_range))
            except InvalidRangeError as exc:
                logger.warning(
                    "Skipping unusable entry %s for %s on %s: %s",
                    entry.entry_id, owner_id, parsed, exc,
                )
        return pairs

    def day_availability(self, owner_id: str, day: DateLike) -> DayAvailability:
        pairs = self.valid_entries(owner_id, day)
        if any(entry.is_all_day for entry, _ in pairs):
            return DayAvailability(all_day=True)
        return DayAvailability(blocked=merge_ranges(r for _, r in pairs if r is not None))

    def find_unavailability_conflict(
        self, owner_id: str, day: DateLike, time_range: Optional[TimeRange] = None
    ) -> Optional[UnavailabilityEntry]:
        """
        Return the first entry that blocks the request, or None.

        All-day entries win over partial ones. A request without a window
        is treated as needing the whole day, so any partial entry blocks it.
        """
        pairs = self.valid_entries(owner_id, day)
        for entry, _ in pairs:
            if entry.is_all_day:
                return entry
        for entry, blocked in pairs:
            if time_range is None or blocked.overlaps(time_range):
                return entry
        return None

    def is_available(
        self, owner_id: str, day: DateLike, time_range: Optional[TimeRange] = None
    ) -> bool:
        return self.find_unavailability_conflict(owner_id, day, time_range) is None

    def daily_roster(self, owner_ids: Iterable[str], day: DateLike) -> DailyRoster:
        """Split owners into available and unavailable for the admin calendar."""
        parsed = parse_date(day)
        roster = DailyRoster()
        for owner_id in owner_ids:
            summary = self.day_availability(owner_id, parsed)
            if summary.is_clear:
                roster.available.append(owner_id)
            else:
                roster.unavailable.append(UnavailableOwner(owner_id, summary.reason))
        return roster
