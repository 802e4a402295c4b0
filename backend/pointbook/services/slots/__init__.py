# backend/pointbook/services/slots/__init__.py
"""
Slots calculation module.

Schedule Registry: per-date business hours (override or default)
Level 1: Base day grid (cached in Redis Sorted Sets)
Level 2: Course availability (calculated on-the-fly)
"""

from .config import BookingConfig, get_booking_config
from .schedule import DayWindow, get_window, parse_date
from .calculator import calculate_day_slots
from .redis_store import SlotsRedisStore
from .invalidator import invalidate_day_cache
from .availability import SlotListing, check_interval, list_available_slots

__all__ = [
    "BookingConfig",
    "get_booking_config",
    "DayWindow",
    "get_window",
    "parse_date",
    "calculate_day_slots",
    "SlotsRedisStore",
    "invalidate_day_cache",
    "SlotListing",
    "check_interval",
    "list_available_slots",
]
