"""Tests for configuration loading and validation."""

import pytest

from booking_engine.config import AppConfig, SchedulingConfig, _validate_config


def _config_with(**scheduling_values) -> AppConfig:
    scheduling = SchedulingConfig.__new__(SchedulingConfig)
    defaults = {
        "max_transaction_retries": 3,
        "reject_conflicting_submissions": False,
        "max_calendar_range_days": 366,
    }
    defaults.update(scheduling_values)
    for name, value in defaults.items():
        object.__setattr__(scheduling, name, value)

    config = AppConfig.__new__(AppConfig)
    object.__setattr__(config, "scheduling", scheduling)
    object.__setattr__(config, "log_level", "INFO")
    object.__setattr__(config, "service_name", "test")
    return config


class TestConfigValidation:
    def test_default_config_passes_validation(self):
        config = AppConfig()
        _validate_config(config)  # should not raise

    def test_defaults(self):
        config = AppConfig()
        assert config.scheduling.max_transaction_retries >= 1
        assert isinstance(config.scheduling.reject_conflicting_submissions, bool)

    def test_zero_retries_rejected(self):
        with pytest.raises(ValueError, match="MAX_TRANSACTION_RETRIES"):
            _validate_config(_config_with(max_transaction_retries=0))

    def test_zero_range_days_rejected(self):
        with pytest.raises(ValueError, match="MAX_CALENDAR_RANGE_DAYS"):
            _validate_config(_config_with(max_calendar_range_days=0))

    def test_blank_service_name_rejected(self):
        config = _config_with()
        object.__setattr__(config, "service_name", "  ")
        with pytest.raises(ValueError, match="SERVICE_NAME"):
            _validate_config(config)


class TestEnvParsing:
    def test_safe_int_parsing(self):
        from booking_engine.config import _safe_int

        assert _safe_int("NONEXISTENT_VAR_12345", "42") == 42

    def test_safe_int_bad_value(self, monkeypatch):
        from booking_engine.config import _safe_int

        monkeypatch.setenv("BOOKING_TEST_INT", "three")
        with pytest.raises(ValueError, match="BOOKING_TEST_INT"):
            _safe_int("BOOKING_TEST_INT", "3")

    @pytest.mark.parametrize("raw,expected", [
        ("true", True), ("1", True), ("YES", True), ("off", False), ("0", False),
    ])
    def test_safe_bool_parsing(self, monkeypatch, raw, expected):
        from booking_engine.config import _safe_bool

        monkeypatch.setenv("BOOKING_TEST_BOOL", raw)
        assert _safe_bool("BOOKING_TEST_BOOL", "false") is expected

    def test_safe_bool_bad_value(self, monkeypatch):
        from booking_engine.config import _safe_bool

        monkeypatch.setenv("BOOKING_TEST_BOOL", "maybe")
        with pytest.raises(ValueError, match="BOOKING_TEST_BOOL"):
            _safe_bool("BOOKING_TEST_BOOL", "false")
