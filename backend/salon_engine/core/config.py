"""
Centralized configuration module for engine-wide settings.

Values are read from environment variables once at import time and exposed
both as module-level constants and through ``EngineSettings`` so services can
receive them by injection (tests build their own settings).
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime, time
from decimal import Decimal, InvalidOperation
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

TRUTHY = ("true", "1", "yes")

# ===========================
# Timezone Configuration
# ===========================


def get_app_timezone() -> ZoneInfo:
    """
    Get the application timezone from the TZ environment variable.

    Appointment dates and times are stored as naive local values in this
    timezone. Defaults to UTC; an invalid name falls back to UTC with a warning.
    """
    tz_name = os.getenv("TZ", "UTC")

    try:
        return ZoneInfo(tz_name)
    except Exception as e:
        logger.warning(
            f"Invalid timezone '{tz_name}' specified in TZ environment variable. "
            f"Falling back to UTC. Error: {e}"
        )
        return ZoneInfo("UTC")


APP_TZ = get_app_timezone()


def now_local() -> datetime:
    """Current wall-clock time in APP_TZ as a naive datetime."""
    return datetime.now(APP_TZ).replace(tzinfo=None)


# ===========================
# Commission Configuration
# ===========================


def get_platform_fee_percent() -> Decimal:
    """
    Get the platform fee applied to every settled appointment.

    Environment Variables:
        PLATFORM_FEE_PERCENT: Percentage of the appointment price kept by the
            platform before the staff/salon split. Default: 0.
    """
    raw = os.getenv("PLATFORM_FEE_PERCENT", "0")
    try:
        value = Decimal(raw.strip())
    except (InvalidOperation, AttributeError):
        logger.warning(
            "Invalid PLATFORM_FEE_PERCENT, using 0",
            extra={"context": {"PLATFORM_FEE_PERCENT": raw}},
        )
        return Decimal("0")

    if value < 0 or value > 100:
        logger.warning(
            "PLATFORM_FEE_PERCENT out of range 0-100, using 0",
            extra={"context": {"PLATFORM_FEE_PERCENT": raw}},
        )
        return Decimal("0")
    return value


PLATFORM_FEE_PERCENT = get_platform_fee_percent()


# ===========================
# Scheduling Configuration
# ===========================


def _parse_clock(raw: str, default: time, name: str) -> time:
    try:
        return time.fromisoformat(raw.strip())
    except (ValueError, AttributeError):
        logger.warning(
            f"Invalid {name}, using {default.isoformat()}",
            extra={"context": {name: raw}},
        )
        return default


def _parse_positive_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        value = int(raw)
    except (TypeError, ValueError):
        logger.warning(
            f"Invalid {name}, using {default}", extra={"context": {name: raw}}
        )
        return default
    if value <= 0:
        logger.warning(
            f"{name} must be positive, using {default}",
            extra={"context": {name: raw}},
        )
        return default
    return value


WORKING_HOURS_OPEN = _parse_clock(
    os.getenv("WORKING_HOURS_OPEN", "09:00"), time(9, 0), "WORKING_HOURS_OPEN"
)
WORKING_HOURS_CLOSE = _parse_clock(
    os.getenv("WORKING_HOURS_CLOSE", "18:00"), time(18, 0), "WORKING_HOURS_CLOSE"
)

# Minutes after the start time before a confirmed appointment counts as a no-show
NO_SHOW_GRACE_MINUTES = _parse_positive_int("NO_SHOW_GRACE_MINUTES", 15)

ENABLE_NO_SHOW_SWEEP = os.getenv("ENABLE_NO_SHOW_SWEEP", "true").lower() in TRUTHY
NO_SHOW_SWEEP_INTERVAL_MINUTES = _parse_positive_int(
    "NO_SHOW_SWEEP_INTERVAL_MINUTES", 10
)


# ===========================
# Runtime Configuration
# ===========================


def get_database_url() -> str:
    return os.getenv("DATABASE_URL", "sqlite:///./salon_engine.db")


def is_testing() -> bool:
    return os.getenv("TESTING", "").lower().strip() in TRUTHY


@dataclass(frozen=True)
class EngineSettings:
    """Snapshot of the settings the services depend on."""

    platform_fee_percent: Decimal = Decimal("0")
    working_hours_open: time = time(9, 0)
    working_hours_close: time = time(18, 0)
    no_show_grace_minutes: int = 15

    @classmethod
    def from_env(cls) -> "EngineSettings":
        return cls(
            platform_fee_percent=PLATFORM_FEE_PERCENT,
            working_hours_open=WORKING_HOURS_OPEN,
            working_hours_close=WORKING_HOURS_CLOSE,
            no_show_grace_minutes=NO_SHOW_GRACE_MINUTES,
        )


def log_engine_config():
    """
    Log the active engine configuration.

    Should be called during application startup.
    """
    logger.info(
        "Engine configuration initialized",
        extra={
            "context": {
                "timezone": str(APP_TZ),
                "platform_fee_percent": str(PLATFORM_FEE_PERCENT),
                "working_hours": f"{WORKING_HOURS_OPEN.isoformat()}-{WORKING_HOURS_CLOSE.isoformat()}",
                "no_show_grace_minutes": NO_SHOW_GRACE_MINUTES,
                "no_show_sweep": ENABLE_NO_SHOW_SWEEP,
            }
        },
    )
