"""
Exceptions raised by the availability store, resolver and booking service.

Every error carries the owner, date and booking identifiers involved so the
calling application can explain the rejection without re-querying.
"""

from datetime import date
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from booking_engine.schemas.availability_schema import TimeRange, UnavailabilityEntry


class SchedulingError(Exception):
    """Base exception for all scheduling engine errors."""

    def __init__(
        self,
        message: str,
        owner_id: Optional[str] = None,
        date: Optional[date] = None,
        booking_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.owner_id = owner_id
        self.date = date
        self.booking_id = booking_id


# --- Input validation: rejected locally, never retried ---


class InvalidRangeError(SchedulingError, ValueError):
    """Raised when a time or date range is empty, inverted or out of bounds."""


class MalformedDateError(SchedulingError, ValueError):
    """Raised when a date string is not a valid YYYY-MM-DD calendar date."""


# --- State machine guard violations: user-facing, never retried ---


class InvalidTransitionError(SchedulingError):
    """Raised when a booking status change is not in the transition table."""

    def __init__(self, current: str, requested: str, **kwargs) -> None:
        super().__init__(
            f"Cannot move booking from '{current}' to '{requested}'",
            **kwargs,
        )
        self.current = current
        self.requested = requested


class PrematureCompletionError(SchedulingError):
    """Raised when a booking is completed before its event has ended."""


class ActorNotPermittedError(SchedulingError):
    """Raised when someone other than an allowed party attempts a transition."""


class BookingNotFoundError(SchedulingError):
    """Raised when a booking id does not exist."""


# --- Scheduling conflicts ---


class SchedulingConflictError(SchedulingError):
    """A proposed booking collides with unavailability or another booking."""


class OwnerUnavailableAllDay(SchedulingConflictError):
    """The owner has blocked out the entire date."""


class OwnerUnavailableTimeRange(SchedulingConflictError):
    """The requested window overlaps a partial-day unavailability entry."""

    def __init__(
        self,
        message: str,
        conflicting_range: "TimeRange",
        entry: Optional["UnavailabilityEntry"] = None,
        **kwargs,
    ) -> None:
        super().__init__(message, **kwargs)
        self.conflicting_range = conflicting_range
        self.entry = entry


class DoubleBookingError(SchedulingConflictError):
    """The requested window overlaps an already confirmed booking."""

    def __init__(self, message: str, existing_booking_id: str, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.existing_booking_id = existing_booking_id


# --- Transient ---


class ConcurrentModificationError(SchedulingError):
    """Raised when a partition changed between read and write. Retryable."""
