"""
Finite state machine for booking request lifecycles.

A request starts as pending. The owner confirms or declines it; once the
event is over either party marks a confirmed booking completed. Every
transition must appear in the table below, and confirmation re-runs the
conflict check inside the same transaction that writes the new status.

Usage:
    service = BookingService(resolver, InMemoryBookingBackend())
    booking, verdict = service.submit("artist-1", "venue-9", "2025-08-01",
                                      TimeRange.parse("13:00", "15:00"))
    service.confirm(booking.id, actor_id="artist-1")
"""

import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any, Callable, Optional

from booking_engine.config import settings
from booking_engine.errors import (
    ActorNotPermittedError,
    BookingNotFoundError,
    InvalidTransitionError,
    PrematureCompletionError,
)
from booking_engine.logging_context import get_request_logger, request_scope
from booking_engine.scheduling.conflict_resolver import ConflictResolver
from booking_engine.schemas.availability_schema import TimeRange
from booking_engine.schemas.booking_schema import (
    BookingEvent,
    BookingRequest,
    BookingStatus,
    Verdict,
)
from booking_engine.storage.base import BookingBackend
from booking_engine.utils import DateLike, parse_date, retry_on_conflict

logger = get_request_logger(__name__)

EventSink = Callable[[BookingEvent], None]


class BookingAction(str, Enum):
    """Requests that move a booking between statuses."""
    CONFIRM = "confirm"
    DECLINE = "decline"
    COMPLETE = "complete"


class Party(str, Enum):
    """Who may perform a transition."""
    OWNER = "owner"
    EITHER = "either"


@dataclass(frozen=True)
class Transition:
    """A single valid status transition."""
    from_status: BookingStatus
    to_status: BookingStatus
    action: BookingAction
    allowed: Party


ACTION_TARGETS: dict[BookingAction, BookingStatus] = {
    BookingAction.CONFIRM: BookingStatus.CONFIRMED,
    BookingAction.DECLINE: BookingStatus.DECLINED,
    BookingAction.COMPLETE: BookingStatus.COMPLETED,
}

TRANSITIONS: list[Transition] = [
    Transition(BookingStatus.PENDING, BookingStatus.CONFIRMED,
               BookingAction.CONFIRM, Party.OWNER),
    Transition(BookingStatus.PENDING, BookingStatus.DECLINED,
               BookingAction.DECLINE, Party.OWNER),
    Transition(BookingStatus.CONFIRMED, BookingStatus.COMPLETED,
               BookingAction.COMPLETE, Party.EITHER),
]

TERMINAL_STATUSES = frozenset({BookingStatus.DECLINED, BookingStatus.COMPLETED})


def find_transition(current: BookingStatus, action: BookingAction) -> Transition:
    """Look up the transition for ``action`` from ``current``."""
    for t in TRANSITIONS:
        if t.from_status == current and t.action == action:
            return t
    raise InvalidTransitionError(current.value, ACTION_TARGETS[action].value)


def valid_actions(current: BookingStatus) -> list[BookingAction]:
    """Return all actions valid from the given status."""
    return [t.action for t in TRANSITIONS if t.from_status == current]


def is_terminal(status: BookingStatus) -> bool:
    """Check if no further transitions are possible."""
    return status in TERMINAL_STATUSES


def event_end(booking: BookingRequest) -> datetime:
    """Local datetime the event finishes; end of day when no window is set."""
    window = booking.time_range
    if window is None:
        return datetime.combine(booking.event_date + timedelta(days=1), time.min)
    return datetime.combine(booking.event_date, time.min) + timedelta(minutes=window.end)


class BookingService:
    """
    Owns booking persistence and lifecycle.

    Submission is recorded regardless of conflicts (the verdict is returned
    for display) unless strict submission is configured. Confirmation is the
    authoritative check: the owner/date booking partition is read, the
    conflict check runs against that snapshot, and the status write only
    lands if the partition is unchanged.
    """

    def __init__(
        self,
        resolver: ConflictResolver,
        backend: BookingBackend,
        event_sink: Optional[EventSink] = None,
        now: Callable[[], datetime] = datetime.now,
        max_attempts: Optional[int] = None,
        reject_conflicting_submissions: Optional[bool] = None,
    ) -> None:
        self._resolver = resolver
        self._backend = backend
        self._event_sink = event_sink
        self._now = now
        if max_attempts is None:
            max_attempts = settings.scheduling.max_transaction_retries
        self._max_attempts = max_attempts
        if reject_conflicting_submissions is None:
            reject_conflicting_submissions = settings.scheduling.reject_conflicting_submissions
        self._strict_submission = reject_conflicting_submissions
        self._history: dict[str, list[BookingEvent]] = {}

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def get(self, booking_id: str) -> BookingRequest:
        booking = self._backend.get(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found", booking_id=booking_id)
        return booking

    def list_for_owner(
        self,
        owner_id: str,
        day: Optional[DateLike] = None,
        status: Optional[BookingStatus] = None,
    ) -> list[BookingRequest]:
        if day is not None:
            bookings, _ = self._backend.list_for_date(owner_id, parse_date(day))
            bookings = sorted(bookings, key=lambda b: b.created_at)
        else:
            bookings = self._backend.list_for_owner(owner_id)
        if status is not None:
            bookings = [b for b in bookings if b.status == status]
        return bookings

    def history(self, booking_id: str) -> list[BookingEvent]:
        """Status changes recorded for a booking, oldest first."""
        return list(self._history.get(booking_id, []))

    # ------------------------------------------------------------------ #
    # Commands
    # ------------------------------------------------------------------ #

    def submit(
        self,
        owner_id: str,
        counterparty_id: str,
        event_date: DateLike,
        time_range: Optional[TimeRange] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> tuple[BookingRequest, Verdict]:
        """Record a new pending request and report whether it currently fits."""
        missing = [
            name for name, value in [("owner_id", owner_id), ("counterparty_id", counterparty_id)]
            if not value or not value.strip()
        ]
        if missing:
            raise ValueError(f"Cannot submit booking - missing required fields: {', '.join(missing)}")

        with request_scope():
            return self._record_submission(
                owner_id, counterparty_id, parse_date(event_date), time_range, details
            )

    def confirm(self, booking_id: str, actor_id: str) -> BookingRequest:
        return self._apply(booking_id, BookingAction.CONFIRM, actor_id)

    def decline(self, booking_id: str, actor_id: str) -> BookingRequest:
        return self._apply(booking_id, BookingAction.DECLINE, actor_id)

    def complete(self, booking_id: str, actor_id: str) -> BookingRequest:
        return self._apply(booking_id, BookingAction.COMPLETE, actor_id)

    # ------------------------------------------------------------------ #
    # Transition machinery
    # ------------------------------------------------------------------ #

    def _record_submission(
        self,
        owner_id: str,
        counterparty_id: str,
        day: date,
        time_range: Optional[TimeRange],
        details: Optional[dict[str, Any]],
    ) -> tuple[BookingRequest, Verdict]:
        verdict = self._resolver.evaluate(owner_id, day, time_range)
        if not verdict.accepted:
            if self._strict_submission:
                verdict.raise_for_conflict()
            logger.warning(
                "Booking submitted for %s on %s despite conflict: %s",
                owner_id, day, verdict.reason,
            )

        stamp = self._now()
        booking = BookingRequest(
            id=f"BK-{uuid.uuid4().hex[:8].upper()}",
            owner_id=owner_id,
            counterparty_id=counterparty_id,
            event_date=day,
            start_time=time_range.start_time if time_range else None,
            end_time=time_range.end_time if time_range else None,
            status=BookingStatus.PENDING,
            created_at=stamp,
            updated_at=stamp,
            details=details or {},
        )

        def write() -> None:
            _, version = self._backend.list_for_date(owner_id, day)
            self._backend.save(booking, version)

        retry_on_conflict(write, self._max_attempts)
        logger.info("Booking %s submitted by %s for %s on %s", booking.id, counterparty_id,
                    owner_id, day)
        return booking, verdict

    def _apply(self, booking_id: str, action: BookingAction, actor_id: str) -> BookingRequest:
        with request_scope():
            return self._transition(booking_id, action, actor_id)

    def _transition(
        self, booking_id: str, action: BookingAction, actor_id: str
    ) -> BookingRequest:
        located = self.get(booking_id)
        owner_id, day = located.owner_id, located.event_date

        def attempt() -> tuple[BookingRequest, BookingRequest]:
            snapshot, version = self._backend.list_for_date(owner_id, day)
            current = next((b for b in snapshot if b.id == booking_id), None)
            if current is None:
                raise BookingNotFoundError(
                    f"Booking {booking_id} not found", owner_id=owner_id, date=day,
                    booking_id=booking_id,
                )
            transition = self._guard(current, action, actor_id, snapshot)
            updated = current.model_copy(
                update={"status": transition.to_status, "updated_at": self._now()}
            )
            self._backend.save(updated, version)
            return current, updated

        before, after = retry_on_conflict(attempt, self._max_attempts)
        logger.info(
            "Booking %s: %s -> %s by %s",
            booking_id, before.status.value, after.status.value, actor_id,
        )
        self._emit(BookingEvent(
            booking_id=booking_id,
            owner_id=owner_id,
            from_status=before.status,
            to_status=after.status,
            actor_id=actor_id,
            timestamp=after.updated_at,
        ))
        return after

    def _guard(
        self,
        booking: BookingRequest,
        action: BookingAction,
        actor_id: str,
        snapshot: list[BookingRequest],
    ) -> Transition:
        """Raise unless ``action`` may run on ``booking`` right now."""
        try:
            transition = find_transition(booking.status, action)
        except InvalidTransitionError as exc:
            exc.owner_id, exc.date, exc.booking_id = booking.owner_id, booking.event_date, booking.id
            raise

        self._check_actor(booking, transition, actor_id)

        if action == BookingAction.CONFIRM:
            self._resolver.evaluate_against(
                booking.owner_id,
                booking.event_date,
                booking.time_range,
                snapshot,
                exclude_booking_id=booking.id,
            ).raise_for_conflict()
        elif action == BookingAction.COMPLETE:
            ends = event_end(booking)
            if self._now() < ends:
                raise PrematureCompletionError(
                    f"Booking {booking.id} cannot be completed before {ends:%Y-%m-%d %H:%M}",
                    owner_id=booking.owner_id,
                    date=booking.event_date,
                    booking_id=booking.id,
                )
        return transition

    @staticmethod
    def _check_actor(booking: BookingRequest, transition: Transition, actor_id: str) -> None:
        allowed = {booking.owner_id}
        if transition.allowed == Party.EITHER:
            allowed.add(booking.counterparty_id)
        if actor_id not in allowed:
            raise ActorNotPermittedError(
                f"{actor_id} may not {transition.action.value} booking {booking.id}",
                owner_id=booking.owner_id,
                date=booking.event_date,
                booking_id=booking.id,
            )

    def _emit(self, event: BookingEvent) -> None:
        self._history.setdefault(event.booking_id, []).append(event)
        if self._event_sink is None:
            return
        try:
            self._event_sink(event)
        except Exception:
            logger.exception("Event sink failed for booking %s", event.booking_id)
