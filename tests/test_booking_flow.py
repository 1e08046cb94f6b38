"""Integration tests: store + engine + resolver + booking service together."""

import threading
from datetime import datetime

import pytest

from booking_engine.errors import (
    ConcurrentModificationError,
    DoubleBookingError,
    OwnerUnavailableAllDay,
    OwnerUnavailableTimeRange,
    PrematureCompletionError,
    SchedulingConflictError,
)
from booking_engine.scheduling.availability_engine import AvailabilityEngine
from booking_engine.scheduling.availability_store import AvailabilityStore
from booking_engine.scheduling.booking_state_machine import BookingService
from booking_engine.scheduling.conflict_resolver import ConflictResolver
from booking_engine.schemas.availability_schema import AllDay, PartialDay
from booking_engine.schemas.booking_schema import BookingStatus
from booking_engine.storage.memory import InMemoryAvailabilityBackend, InMemoryBookingBackend
from tests.conftest import ARTIST, VENUE, FakeClock, tr


class TestScenarios:
    def test_all_day_block_rejects_confirmation(self, store, service):
        store.set_unavailability("artist-1", "2025-07-04", AllDay())
        for window in (None, tr("00:00", "01:00"), tr("19:00", "21:00")):
            booking, _ = service.submit("artist-1", VENUE, "2025-07-04", window)
            with pytest.raises(OwnerUnavailableAllDay):
                service.confirm(booking.id, "artist-1")

    def test_partial_block(self, store, service):
        store.set_unavailability(ARTIST, "2025-08-01", PartialDay([tr("09:00", "12:00")]))
        afternoon, _ = service.submit(ARTIST, VENUE, "2025-08-01", tr("13:00", "15:00"))
        morning, _ = service.submit(ARTIST, "venue-2", "2025-08-01", tr("10:00", "11:00"))

        assert service.confirm(afternoon.id, ARTIST).status == BookingStatus.CONFIRMED
        with pytest.raises(OwnerUnavailableTimeRange):
            service.confirm(morning.id, ARTIST)

    def test_double_booking(self, service):
        first, _ = service.submit("artist-1", VENUE, "2025-09-10", tr("18:00", "20:00"))
        overlap, _ = service.submit("artist-1", "venue-2", "2025-09-10", tr("19:00", "21:00"))
        later, _ = service.submit("artist-1", "venue-3", "2025-09-10", tr("21:00", "23:00"))

        service.confirm(first.id, "artist-1")
        with pytest.raises(DoubleBookingError) as exc_info:
            service.confirm(overlap.id, "artist-1")
        assert exc_info.value.existing_booking_id == first.id
        assert service.get(overlap.id).status == BookingStatus.PENDING
        assert service.confirm(later.id, "artist-1").status == BookingStatus.CONFIRMED

    def test_completion_timing(self, service, clock):
        past, _ = service.submit(ARTIST, VENUE, "2025-05-20", tr("18:00", "20:00"))
        future, _ = service.submit(ARTIST, VENUE, "2025-06-20", tr("18:00", "20:00"))
        service.confirm(past.id, ARTIST)
        service.confirm(future.id, ARTIST)

        assert service.complete(past.id, VENUE).status == BookingStatus.COMPLETED
        with pytest.raises(PrematureCompletionError):
            service.complete(future.id, VENUE)


class TestProperties:
    @pytest.mark.parametrize("first,second", [
        (AllDay(), PartialDay([tr("09:00", "10:00")])),
        (PartialDay([tr("09:00", "10:00"), tr("12:00", "13:00")]), AllDay()),
        (PartialDay([tr("09:00", "10:00")]), PartialDay([tr("15:00", "16:00")])),
        (AllDay(), PartialDay()),
    ])
    def test_second_write_fully_replaces_first(self, store, first, second):
        store.set_unavailability(ARTIST, "2025-08-01", first)
        written = store.set_unavailability(ARTIST, "2025-08-01", second)
        assert store.get_unavailability(ARTIST, "2025-08-01") == written

    def test_all_day_exclusive_for_any_window(self, store, resolver):
        store.set_unavailability(ARTIST, "2025-08-01", AllDay())
        for hour in range(0, 23):
            window = tr(f"{hour:02d}:00", f"{hour + 1:02d}:00")
            assert isinstance(
                resolver.evaluate(ARTIST, "2025-08-01", window).conflict, OwnerUnavailableAllDay
            )

    def test_no_double_confirm(self, service):
        b1, _ = service.submit(ARTIST, VENUE, "2025-08-01", tr("10:00", "12:00"))
        b2, _ = service.submit(ARTIST, "venue-2", "2025-08-01", tr("11:00", "13:00"))
        service.confirm(b1.id, ARTIST)
        with pytest.raises(DoubleBookingError):
            service.confirm(b2.id, ARTIST)

    def test_idempotent_clear(self, store):
        store.set_unavailability(ARTIST, "2025-08-01", AllDay())
        store.clear_date(ARTIST, "2025-08-01")
        first = store.get_unavailability(ARTIST, "2025-08-01")
        store.clear_date(ARTIST, "2025-08-01")
        assert store.get_unavailability(ARTIST, "2025-08-01") == first == []

    def test_blocking_after_confirmation_keeps_booking(self, store, service, resolver):
        booking, _ = service.submit(ARTIST, VENUE, "2025-08-01", tr("18:00", "20:00"))
        service.confirm(booking.id, ARTIST)
        store.set_unavailability(ARTIST, "2025-08-01", AllDay())
        assert service.get(booking.id).status == BookingStatus.CONFIRMED
        assert resolver.stranded_bookings(ARTIST, "2025-08-01")[0].id == booking.id


class RacingBookingBackend(InMemoryBookingBackend):
    """Lets a competing confirmation land right after the first read."""

    def __init__(self) -> None:
        super().__init__()
        self.on_first_save = None

    def save(self, booking, expected_version):
        hook, self.on_first_save = self.on_first_save, None
        if hook is not None:
            hook()
        return super().save(booking, expected_version)


class TestConcurrency:
    def _wire(self, bookings, clock):
        store = AvailabilityStore(InMemoryAvailabilityBackend(), max_attempts=3)
        resolver = ConflictResolver(AvailabilityEngine(store), bookings)
        return BookingService(resolver, bookings, now=clock, max_attempts=3)

    def test_competing_confirm_detected_on_retry(self):
        bookings = RacingBookingBackend()
        service = self._wire(bookings, FakeClock(datetime(2025, 6, 1)))
        b1, _ = service.submit(ARTIST, VENUE, "2025-08-01", tr("10:00", "12:00"))
        b2, _ = service.submit(ARTIST, "venue-2", "2025-08-01", tr("11:00", "13:00"))

        # b1 is confirmed between b2's read and b2's write
        bookings.on_first_save = lambda: service.confirm(b1.id, ARTIST)
        with pytest.raises(DoubleBookingError):
            service.confirm(b2.id, ARTIST)

        assert service.get(b1.id).status == BookingStatus.CONFIRMED
        assert service.get(b2.id).status == BookingStatus.PENDING

    def test_persistent_contention_surfaces(self, clock):
        class AlwaysStale(InMemoryBookingBackend):
            def save(self, booking, expected_version):
                if booking.status != BookingStatus.PENDING:
                    raise ConcurrentModificationError("stale", booking_id=booking.id)
                return super().save(booking, expected_version)

        bookings = AlwaysStale()
        service = self._wire(bookings, clock)
        booking, _ = service.submit(ARTIST, VENUE, "2025-08-01")
        with pytest.raises(ConcurrentModificationError):
            service.confirm(booking.id, ARTIST)
        assert service.get(booking.id).status == BookingStatus.PENDING
        assert service.history(booking.id) == []

    def test_parallel_confirms_admit_exactly_one(self, clock):
        bookings = InMemoryBookingBackend()
        service = self._wire(bookings, clock)
        pending = [
            service.submit(ARTIST, f"venue-{i}", "2025-08-01", tr("18:00", "20:00"))[0]
            for i in range(8)
        ]
        outcomes = []
        barrier = threading.Barrier(len(pending))

        def confirm(booking_id):
            barrier.wait()
            try:
                service.confirm(booking_id, ARTIST)
                outcomes.append("confirmed")
            except SchedulingConflictError:
                outcomes.append("conflict")
            except ConcurrentModificationError:
                outcomes.append("contention")

        threads = [threading.Thread(target=confirm, args=(b.id,)) for b in pending]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("confirmed") == 1
        confirmed = service.list_for_owner(ARTIST, status=BookingStatus.CONFIRMED)
        assert len(confirmed) == 1

    def test_different_dates_do_not_contend(self, service):
        a, _ = service.submit(ARTIST, VENUE, "2025-08-01", tr("18:00", "20:00"))
        b, _ = service.submit(ARTIST, VENUE, "2025-08-02", tr("18:00", "20:00"))
        service.confirm(a.id, ARTIST)
        assert service.confirm(b.id, ARTIST).status == BookingStatus.CONFIRMED
