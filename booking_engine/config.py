"""
Centralized configuration with environment variable overrides.

Transaction retry bounds, submission policy and calendar query limits are
configurable here. Nothing is hardcoded in the store or scheduling logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from booking_engine.logging_context import RequestIdFilter

load_dotenv()

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_bool(env_var: str, default: str) -> bool:
    """Parse a boolean flag from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default).strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean for {env_var}: {raw!r}")


@dataclass(frozen=True)
class SchedulingConfig:
    """Booking and availability rules."""

    max_transaction_retries: int = _safe_int("MAX_TRANSACTION_RETRIES", "3")
    reject_conflicting_submissions: bool = _safe_bool(
        "REJECT_CONFLICTING_SUBMISSIONS", "false"
    )
    max_calendar_range_days: int = _safe_int("MAX_CALENDAR_RANGE_DAYS", "366")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    service_name: str = os.getenv("SERVICE_NAME", "booking-engine")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.scheduling.max_transaction_retries < 1:
        raise ValueError(
            "MAX_TRANSACTION_RETRIES must be >= 1, "
            f"got {config.scheduling.max_transaction_retries}"
        )
    if config.scheduling.max_calendar_range_days < 1:
        raise ValueError(
            "MAX_CALENDAR_RANGE_DAYS must be >= 1, "
            f"got {config.scheduling.max_calendar_range_days}"
        )
    if not config.service_name.strip():
        raise ValueError("SERVICE_NAME must not be empty")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    handler = logging.StreamHandler()
    handler.addFilter(RequestIdFilter())
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[handler],
    )
    logger.info("Configuration loaded for '%s'", config.service_name)
    return config


# Singleton instance
settings = load_config()
