"""Time range value type and unavailability records."""

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional, Union

from pydantic import BaseModel, model_validator

from booking_engine.errors import InvalidRangeError
from booking_engine.utils import MINUTES_PER_DAY, format_minutes, parse_time_of_day

ALL_DAY_REASON = "All Day"


@dataclass(frozen=True, order=True)
class TimeRange:
    """
    Half-open local time interval ``[start, end)`` within one calendar day.

    Bounds are minutes since midnight. Both must lie in ``[0, 1440)`` and
    ``start`` must be strictly before ``end``.
    """

    start: int
    end: int

    def __post_init__(self) -> None:
        for bound in (self.start, self.end):
            if isinstance(bound, bool) or not isinstance(bound, int):
                raise InvalidRangeError(f"Time bounds must be minutes, got {bound!r}")
            if not 0 <= bound < MINUTES_PER_DAY:
                raise InvalidRangeError(
                    f"Time bound {bound} is outside the day [0, {MINUTES_PER_DAY})"
                )
        if self.start >= self.end:
            raise InvalidRangeError(
                f"Start {format_minutes(self.start)} must be before end {format_minutes(self.end)}"
            )

    @classmethod
    def parse(cls, start: str, end: str) -> "TimeRange":
        """Build a range from HH:MM strings."""
        return cls(parse_time_of_day(start), parse_time_of_day(end))

    @classmethod
    def from_start_and_duration(cls, start: str, hours: float) -> "TimeRange":
        """Build a range from a start time and an event length in hours.

        Events that would run past midnight are rejected rather than split.
        """
        if hours <= 0:
            raise InvalidRangeError(f"Event length must be positive, got {hours}")
        begin = parse_time_of_day(start)
        return cls(begin, begin + round(hours * 60))

    @property
    def start_time(self) -> str:
        return format_minutes(self.start)

    @property
    def end_time(self) -> str:
        return format_minutes(self.end)

    @property
    def duration_minutes(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "TimeRange") -> bool:
        """True when the ranges share at least one minute. Touching ends don't count."""
        return self.start < other.end and other.start < self.end

    def contains(self, point_minutes: int) -> bool:
        return self.start <= point_minutes < self.end

    def __str__(self) -> str:
        return f"{self.start_time} - {self.end_time}"


@dataclass(frozen=True)
class AllDay:
    """Unavailable for the whole date."""


@dataclass(frozen=True)
class PartialDay:
    """Unavailable for the listed windows. No windows means available."""

    ranges: tuple[TimeRange, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        ranges = tuple(self.ranges)
        for item in ranges:
            if not isinstance(item, TimeRange):
                raise TypeError(f"PartialDay ranges must be TimeRange, got {item!r}")
        object.__setattr__(self, "ranges", ranges)

    @classmethod
    def from_strings(cls, pairs: Iterable[tuple[str, str]]) -> "PartialDay":
        """Build from ``[("09:00", "12:00"), ...]`` pairs."""
        return cls(tuple(TimeRange.parse(start, end) for start, end in pairs))


UnavailabilitySpec = Union[AllDay, PartialDay]


class UnavailabilityEntry(BaseModel):
    """A stored exception marking an owner unreachable on part or all of a date."""

    entry_id: str
    owner_id: str
    unavailable_date: date
    is_all_day: bool
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _times_match_kind(self) -> "UnavailabilityEntry":
        has_times = self.start_time is not None and self.end_time is not None
        if self.is_all_day and (self.start_time is not None or self.end_time is not None):
            raise ValueError("All-day entries must not carry start/end times")
        if not self.is_all_day and not has_times:
            raise ValueError("Partial-day entries need both start_time and end_time")
        return self

    @property
    def time_range(self) -> Optional[TimeRange]:
        """Parsed window, or None for all-day entries.

        Raises InvalidRangeError for stored windows that are inverted or empty.
        """
        if self.is_all_day:
            return None
        return TimeRange.parse(self.start_time, self.end_time)

    @property
    def reason(self) -> str:
        """Human-readable label used on calendar views."""
        if self.is_all_day:
            return ALL_DAY_REASON
        return f"{self.start_time} - {self.end_time}"
