# backend/pointbook/services/slots/schedule.py
"""
Schedule Registry: per-date business hours.

A date either has a stored override (custom hours or closed all day)
or falls back to the default window from BookingConfig.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import ValidationException
from ...models import ScheduleOverrides
from .config import (
    BookingConfig,
    get_booking_config,
    minutes_to_time,
    time_to_minutes,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DayWindow:
    date: date
    open_time: time
    close_time: time
    is_closed: bool
    is_default: bool = False

    @property
    def open_minutes(self) -> int:
        return time_to_minutes(self.open_time)

    @property
    def close_minutes(self) -> int:
        return time_to_minutes(self.close_time)

    def at(self, minutes: int) -> datetime:
        """Absolute timestamp for a minutes-since-midnight offset on this date."""
        return datetime.combine(self.date, time.min) + timedelta(minutes=minutes)


def parse_date(value) -> date:
    """Accept a date or an ISO "YYYY-MM-DD" string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationException(f"Invalid date: {value!r}", details={"value": str(value)})


def get_window(
    db: Session,
    target_date,
    config: BookingConfig | None = None,
) -> DayWindow:
    """Business hours for a date: stored override, else the default window."""
    config = config or get_booking_config()
    target_date = parse_date(target_date)

    override = db.get(ScheduleOverrides, target_date)
    if override:
        return DayWindow(
            date=target_date,
            open_time=override.open_time,
            close_time=override.close_time,
            is_closed=bool(override.is_closed),
        )

    return DayWindow(
        date=target_date,
        open_time=minutes_to_time(config.default_open_minutes),
        close_time=minutes_to_time(config.default_close_minutes),
        is_closed=False,
        is_default=True,
    )


def list_overrides(db: Session, start: date, end: date) -> list[ScheduleOverrides]:
    if start > end:
        start, end = end, start
    return (
        db.query(ScheduleOverrides)
        .filter(ScheduleOverrides.date >= start, ScheduleOverrides.date <= end)
        .order_by(ScheduleOverrides.date)
        .all()
    )


def set_override(
    db: Session,
    target_date: date,
    open_time: Optional[time],
    close_time: Optional[time],
    is_closed: bool,
    config: BookingConfig | None = None,
) -> ScheduleOverrides:
    """
    Create or replace the override for a date (caller commits).

    A closed day keeps the default hours for display when none are given.
    """
    config = config or get_booking_config()
    open_time = open_time or minutes_to_time(config.default_open_minutes)
    close_time = close_time or minutes_to_time(config.default_close_minutes)

    if not is_closed and open_time >= close_time:
        raise ValidationException(
            "open_time must be before close_time",
            details={"open_time": open_time.isoformat(), "close_time": close_time.isoformat()},
        )

    obj = db.get(ScheduleOverrides, target_date)
    if obj is None:
        obj = ScheduleOverrides(date=target_date)
        db.add(obj)

    obj.open_time = open_time
    obj.close_time = close_time
    obj.is_closed = is_closed
    db.flush()

    logger.info(
        f"Schedule override {target_date}: "
        f"{'closed' if is_closed else f'{open_time:%H:%M}-{close_time:%H:%M}'}"
    )
    return obj


def delete_override(db: Session, target_date: date) -> bool:
    """Drop the override so the date reverts to the default window (caller commits)."""
    obj = db.get(ScheduleOverrides, target_date)
    if obj is None:
        return False
    db.delete(obj)
    db.flush()
    logger.info(f"Schedule override {target_date} removed")
    return True
