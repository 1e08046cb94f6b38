from booking_engine.scheduling.availability_engine import AvailabilityEngine, DailyRoster
from booking_engine.scheduling.availability_store import AvailabilityStore
from booking_engine.scheduling.booking_state_machine import BookingAction, BookingService
from booking_engine.scheduling.conflict_resolver import ConflictResolver

__all__ = [
    "AvailabilityStore",
    "AvailabilityEngine",
    "DailyRoster",
    "ConflictResolver",
    "BookingService",
    "BookingAction",
]
