# backend/pointbook/services/slots/calculator.py
"""
Level 1: Base day grid calculation.

Produces per-slot data:
  (time_str "HH:MM", start_ts float)

start_ts is the slot's absolute start timestamp.
Redis filters with ZRANGEBYSCORE {now_ts} +inf, so past slots drop automatically.

Contains:
✓ business-hours window (schedule override or default)
✓ slot grid step
✓ "no booking into the past" (baked into start_ts)

Does NOT contain:
✗ Course duration vs closing time (checked at Level 2)
✗ Reservations (checked at Level 2)
"""

from datetime import date, datetime
from sqlalchemy.orm import Session

from .config import BookingConfig, get_booking_config, minutes_to_time_str
from .schedule import DayWindow, get_window


def calculate_day_slots(
    db: Session,
    target_date: date,
    config: BookingConfig | None = None,
    now: datetime | None = None,
) -> list[tuple[str, float]]:
    """
    Calculate grid slots for a date.

    Returns:
        List of (time_str, start_ts) pairs. Empty list = no slots.
    """
    config = config or get_booking_config()
    window = get_window(db, target_date, config)
    return window_slots(window, config, now)


def window_slots(
    window: DayWindow,
    config: BookingConfig | None = None,
    now: datetime | None = None,
) -> list[tuple[str, float]]:
    """Enumerate grid starts in [open, close) that are not before now."""
    config = config or get_booking_config()
    now = now or datetime.now()
    now_ts = now.timestamp()

    if window.is_closed:
        return []

    slots: list[tuple[str, float]] = []
    for t in range(window.open_minutes, window.close_minutes, config.slot_step_minutes):
        start_ts = window.at(t).timestamp()
        if start_ts >= now_ts:
            slots.append((minutes_to_time_str(t), start_ts))

    return slots
