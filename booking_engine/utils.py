"""Shared utilities used across the booking engine."""

from datetime import date, datetime
from typing import Callable, TypeVar, Union

from booking_engine.errors import ConcurrentModificationError, InvalidRangeError, MalformedDateError
from booking_engine.logging_context import get_request_logger

logger = get_request_logger(__name__)

T = TypeVar("T")

MINUTES_PER_DAY = 24 * 60

DateLike = Union[str, date]


def parse_date(value: DateLike) -> date:
    """Parse a canonical YYYY-MM-DD string into a date.

    ``date`` instances pass through; ``datetime`` is rejected because the
    time component would be silently dropped.

    Examples:
        >>> parse_date("2025-07-04")
        datetime.date(2025, 7, 4)
    """
    if isinstance(value, datetime):
        raise MalformedDateError(f"Expected a calendar date, got datetime {value!r}")
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise MalformedDateError(f"Expected a YYYY-MM-DD string, got {value!r}")
    raw = value.strip()
    try:
        parsed = datetime.strptime(raw, "%Y-%m-%d").date()
    except ValueError:
        raise MalformedDateError(f"Invalid date {value!r}, expected YYYY-MM-DD") from None
    # strptime accepts "2025-7-4"; only the zero-padded form is canonical
    if parsed.isoformat() != raw:
        raise MalformedDateError(f"Invalid date {value!r}, expected YYYY-MM-DD")
    return parsed


def parse_time_of_day(value: str) -> int:
    """Convert an HH:MM string into minutes since midnight.

    Examples:
        >>> parse_time_of_day("09:30")
        570
    """
    try:
        raw = value.strip()
        parsed = datetime.strptime(raw, "%H:%M")
    except (ValueError, AttributeError):
        raise InvalidRangeError(f"Invalid time {value!r}, expected HH:MM") from None
    minutes = parsed.hour * 60 + parsed.minute
    # strptime accepts "9:5"; only the zero-padded form is canonical
    if format_minutes(minutes) != raw:
        raise InvalidRangeError(f"Invalid time {value!r}, expected HH:MM")
    return minutes


def format_minutes(minutes: int) -> str:
    """Render minutes since midnight as HH:MM."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def retry_on_conflict(operation: Callable[[], T], max_attempts: int) -> T:
    """Run ``operation`` until it stops raising ConcurrentModificationError.

    Each attempt must re-read its inputs. After ``max_attempts`` the last
    conflict propagates to the caller.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
    attempt = 0
    while True:
        attempt += 1
        try:
            return operation()
        except ConcurrentModificationError:
            if attempt == max_attempts:
                logger.warning("Giving up after %d conflicting attempts", attempt)
                raise
            logger.info("Concurrent modification, retrying (attempt %d/%d)",
                        attempt, max_attempts)