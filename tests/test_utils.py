"""Tests for shared utility functions."""

from datetime import date, datetime

import pytest

from booking_engine.errors import ConcurrentModificationError, InvalidRangeError, MalformedDateError
from booking_engine.utils import format_minutes, parse_date, parse_time_of_day, retry_on_conflict


class TestParseDate:
    def test_canonical_string(self):
        assert parse_date("2025-07-04") == date(2025, 7, 4)

    def test_strips_whitespace(self):
        assert parse_date("  2025-07-04 ") == date(2025, 7, 4)

    def test_date_passes_through(self):
        assert parse_date(date(2025, 7, 4)) == date(2025, 7, 4)

    def test_unpadded_rejected(self):
        with pytest.raises(MalformedDateError):
            parse_date("2025-7-4")

    def test_impossible_date_rejected(self):
        with pytest.raises(MalformedDateError):
            parse_date("2025-02-30")

    def test_other_format_rejected(self):
        with pytest.raises(MalformedDateError):
            parse_date("04/07/2025")

    def test_datetime_rejected(self):
        with pytest.raises(MalformedDateError):
            parse_date(datetime(2025, 7, 4, 10, 0))

    def test_non_string_rejected(self):
        with pytest.raises(MalformedDateError):
            parse_date(20250704)


class TestTimeOfDay:
    def test_parse(self):
        assert parse_time_of_day("09:30") == 570

    def test_midnight(self):
        assert parse_time_of_day("00:00") == 0

    def test_invalid(self):
        with pytest.raises(InvalidRangeError):
            parse_time_of_day("24:00")

    @pytest.mark.parametrize("raw", ["9:5", "9:30", "09:5", "0930", " 9:30"])
    def test_unpadded_rejected(self, raw):
        with pytest.raises(InvalidRangeError):
            parse_time_of_day(raw)

    def test_format(self):
        assert format_minutes(570) == "09:30"
        assert format_minutes(0) == "00:00"


class TestRetryOnConflict:
    def test_returns_first_success(self):
        assert retry_on_conflict(lambda: 42, max_attempts=3) == 42

    def test_retries_then_succeeds(self):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ConcurrentModificationError("busy")
            return "done"

        assert retry_on_conflict(flaky, max_attempts=3) == "done"
        assert len(calls) == 3

    def test_gives_up_after_max_attempts(self):
        calls = []

        def always_busy():
            calls.append(1)
            raise ConcurrentModificationError("busy")

        with pytest.raises(ConcurrentModificationError):
            retry_on_conflict(always_busy, max_attempts=3)
        assert len(calls) == 3

    def test_other_errors_not_retried(self):
        calls = []

        def broken():
            calls.append(1)
            raise InvalidRangeError("bad")

        with pytest.raises(InvalidRangeError):
            retry_on_conflict(broken, max_attempts=3)
        assert len(calls) == 1

    def test_zero_attempts_rejected(self):
        with pytest.raises(ValueError, match="max_attempts"):
            retry_on_conflict(lambda: None, max_attempts=0)
