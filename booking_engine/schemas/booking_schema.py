"""Booking request, lifecycle event and verdict models."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator

from booking_engine.errors import SchedulingConflictError
from booking_engine.schemas.availability_schema import TimeRange


class BookingStatus(str, Enum):
    """Lifecycle status of a booking request."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    DECLINED = "declined"
    COMPLETED = "completed"


class BookingRequest(BaseModel):
    """A venue's request to book an artist for one event date.

    Frozen: status changes go through BookingService, which writes a
    ``model_copy`` of the stored record.
    """

    model_config = {"frozen": True}

    id: str
    owner_id: str
    counterparty_id: str
    event_date: date
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    status: BookingStatus = BookingStatus.PENDING
    created_at: datetime
    updated_at: datetime
    details: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _window_valid(self) -> "BookingRequest":
        if (self.start_time is None) != (self.end_time is None):
            raise ValueError("start_time and end_time must be given together")
        if self.start_time is not None:
            TimeRange.parse(self.start_time, self.end_time)
        return self

    @property
    def time_range(self) -> Optional[TimeRange]:
        """The event window, or None when the booking covers the whole date."""
        if self.start_time is None:
            return None
        return TimeRange.parse(self.start_time, self.end_time)


class BookingEvent(BaseModel):
    """Emitted after every successful status change."""

    booking_id: str
    owner_id: str
    from_status: BookingStatus
    to_status: BookingStatus
    actor_id: str
    timestamp: datetime


@dataclass
class Verdict:
    """Outcome of a conflict check."""

    accepted: bool
    conflict: Optional[SchedulingConflictError] = None

    @property
    def reason(self) -> str:
        return str(self.conflict) if self.conflict else "available"

    def raise_for_conflict(self) -> None:
        if self.conflict is not None:
            raise self.conflict
