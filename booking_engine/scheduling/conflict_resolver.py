"""
Single decision point for "can this booking be accepted?".

Checks, in order: an all-day block, an overlapping partial-day block, and
an overlapping booking that is already confirmed. The first hit wins and
is returned as a structured conflict the caller can show to the user.
"""

from datetime import date
from typing import Iterable, Optional

from booking_engine.errors import (
    DoubleBookingError,
    OwnerUnavailableAllDay,
    OwnerUnavailableTimeRange,
    SchedulingConflictError,
)
from booking_engine.logging_context import get_request_logger
from booking_engine.scheduling.availability_engine import AvailabilityEngine
from booking_engine.schemas.availability_schema import TimeRange
from booking_engine.schemas.booking_schema import BookingRequest, BookingStatus, Verdict
from booking_engine.storage.base import BookingBackend
from booking_engine.utils import DateLike, parse_date

logger = get_request_logger(__name__)


def _windows_collide(a: Optional[TimeRange], b: Optional[TimeRange]) -> bool:
    # A missing window means the whole day.
    if a is None or b is None:
        return True
    return a.overlaps(b)


class ConflictResolver:
    """Evaluates proposed bookings against unavailability and confirmed bookings."""

    def __init__(self, engine: AvailabilityEngine, bookings: BookingBackend) -> None:
        self._engine = engine
        self._bookings = bookings

    def evaluate(
        self,
        owner_id: str,
        day: DateLike,
        time_range: Optional[TimeRange] = None,
        exclude_booking_id: Optional[str] = None,
    ) -> Verdict:
        parsed = parse_date(day)
        existing, _ = self._bookings.list_for_date(owner_id, parsed)
        return self.evaluate_against(owner_id, parsed, time_range, existing, exclude_booking_id)

    def evaluate_against(
        self,
        owner_id: str,
        day: date,
        time_range: Optional[TimeRange],
        existing: Iterable[BookingRequest],
        exclude_booking_id: Optional[str] = None,
    ) -> Verdict:
        """Evaluate using a booking snapshot the caller already read."""
        conflict = self._unavailability_conflict(owner_id, day, time_range, exclude_booking_id)
        if conflict is None:
            conflict = self._booking_conflict(
                owner_id, day, time_range, existing, exclude_booking_id
            )
        if conflict is not None:
            logger.debug("Rejected %s on %s (%s): %s", owner_id, day, time_range, conflict)
            return Verdict(accepted=False, conflict=conflict)
        return Verdict(accepted=True)

    def check(
        self,
        owner_id: str,
        day: DateLike,
        time_range: Optional[TimeRange] = None,
        exclude_booking_id: Optional[str] = None,
    ) -> None:
        """Raise the conflict for a rejected booking; return quietly otherwise."""
        self.evaluate(owner_id, day, time_range, exclude_booking_id).raise_for_conflict()

    def stranded_bookings(self, owner_id: str, day: DateLike) -> list[BookingRequest]:
        """
        Confirmed bookings that now sit inside the owner's unavailability.

        Owners may block a date after confirming a booking on it. Nothing is
        cancelled here; the bookings are reported so the host app can follow up.
        """
        parsed = parse_date(day)
        existing, _ = self._bookings.list_for_date(owner_id, parsed)
        stranded = [
            booking for booking in existing
            if booking.status == BookingStatus.CONFIRMED
            and self._engine.find_unavailability_conflict(owner_id, parsed, booking.time_range)
            is not None
        ]
        for booking in stranded:
            logger.warning(
                "Confirmed booking %s for %s on %s overlaps the owner's unavailability",
                booking.id, owner_id, parsed,
            )
        return stranded

    def _unavailability_conflict(
        self,
        owner_id: str,
        day: date,
        time_range: Optional[TimeRange],
        booking_id: Optional[str],
    ) -> Optional[SchedulingConflictError]:
        entry = self._engine.find_unavailability_conflict(owner_id, day, time_range)
        if entry is None:
            return None
        if entry.is_all_day:
            return OwnerUnavailableAllDay(
                f"{owner_id} is unavailable all day on {day}",
                owner_id=owner_id,
                date=day,
                booking_id=booking_id,
            )
        blocked = entry.time_range
        return OwnerUnavailableTimeRange(
            f"{owner_id} is unavailable {blocked} on {day}",
            conflicting_range=blocked,
            entry=entry,
            owner_id=owner_id,
            date=day,
            booking_id=booking_id,
        )

    def _booking_conflict(
        self,
        owner_id: str,
        day: date,
        time_range: Optional[TimeRange],
        existing: Iterable[BookingRequest],
        booking_id: Optional[str],
    ) -> Optional[SchedulingConflictError]:
        for other in existing:
            if other.id == booking_id or other.status != BookingStatus.CONFIRMED:
                continue
            if other.owner_id != owner_id or other.event_date != day:
                continue
            if _windows_collide(time_range, other.time_range):
                when = other.time_range or "all day"
                return DoubleBookingError(
                    f"{owner_id} already has confirmed booking {other.id} on {day} ({when})",
                    existing_booking_id=other.id,
                    owner_id=owner_id,
                    date=day,
                    booking_id=booking_id,
                )
        return None
