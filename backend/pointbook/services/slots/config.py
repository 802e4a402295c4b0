# backend/pointbook/services/slots/config.py
"""
Booking configuration for slots calculation.
"""

from dataclasses import dataclass
from datetime import time
from functools import lru_cache

from ...config import settings
from ...errors import ValidationException


@dataclass(frozen=True)
class BookingConfig:
    """
    Configuration for booking/slots system.

    Attributes:
        slot_step_minutes: Candidate start grid step in minutes (15/30/60)
        default_open_minutes: Opening time when a date has no override
        default_close_minutes: Closing time when a date has no override
    """
    slot_step_minutes: int = 30  # 15 / 30 / 60
    default_open_minutes: int = 10 * 60
    default_close_minutes: int = 18 * 60

    def __post_init__(self):
        """Validate configuration."""
        if self.slot_step_minutes not in (15, 30, 60):
            raise ValueError(f"slot_step_minutes must be 15, 30, or 60, got {self.slot_step_minutes}")
        if self.default_open_minutes >= self.default_close_minutes:
            raise ValueError("default opening time must be before default closing time")


@lru_cache
def get_booking_config() -> BookingConfig:
    """Get booking configuration (singleton), built from settings."""
    return BookingConfig(
        slot_step_minutes=settings.slot_step_minutes,
        default_open_minutes=time_str_to_minutes(settings.default_open_time),
        default_close_minutes=time_str_to_minutes(settings.default_close_time),
    )


# ── Time helpers ─────────────────────────────────────────────────────────
# Minutes since midnight keep the grid free of wall-clock arithmetic.


def time_str_to_minutes(value: str) -> int:
    """"HH:MM" → minutes since midnight."""
    try:
        hours, minutes = value.strip().split(":")[:2]
        h, m = int(hours), int(minutes)
    except (AttributeError, ValueError):
        raise ValidationException(f"Invalid time: {value!r}", details={"value": value})
    if not (0 <= h < 24 and 0 <= m < 60):
        raise ValidationException(f"Invalid time: {value!r}", details={"value": value})
    return h * 60 + m


def minutes_to_time_str(minutes: int) -> str:
    """Minutes since midnight → "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def time_to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def minutes_to_time(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)
