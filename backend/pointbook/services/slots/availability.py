# backend/pointbook/services/slots/availability.py
"""
Level 2: Course availability calculation.

Calculates bookable start times for a course on a specific day.

Takes into account:
- Base day grid (Level 1, cached in Redis Sorted Set)
- Course duration vs closing time
- Non-cancelled reservations on that date

The same interval check (check_interval) backs the Reservation Ledger's
commit-time recheck.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from redis import Redis
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from ...models import Courses, Reservations
from .calculator import window_slots
from .config import BookingConfig, get_booking_config, time_str_to_minutes
from .redis_store import SlotsRedisStore
from .schedule import DayWindow, get_window

logger = logging.getLogger(__name__)

# Rejection reasons
CLOSED = "closed"
BEFORE_OPEN = "before_open"
IN_PAST = "in_past"
PAST_CLOSE = "past_close"
OVERLAP = "overlap"


@dataclass
class SlotListing:
    window: DayWindow
    duration_minutes: int
    times: list[datetime] = field(default_factory=list)


def overlaps(start: datetime, end: datetime, other_start: datetime, other_end: datetime) -> bool:
    """Half-open interval overlap: [start, end) vs [other_start, other_end)."""
    return start < other_end and end > other_start


def check_interval(
    window: DayWindow,
    start: datetime,
    end: datetime,
    reservations: Iterable,
    now: datetime,
) -> Optional[str]:
    """
    Return the reason an interval is not bookable, or None.

    `window` must be the window of start.date().
    Checks run in order: closed, past, opening, closing, overlap.
    """
    if window.is_closed:
        return CLOSED
    if start < now:
        return IN_PAST

    # Exact comparison; start and end may carry seconds
    if start < datetime.combine(window.date, window.open_time):
        return BEFORE_OPEN
    if end > datetime.combine(window.date, window.close_time):
        return PAST_CLOSE

    for existing in reservations:
        if overlaps(start, end, existing.start_time, existing.end_time):
            return OVERLAP
    return None


def list_available_slots(
    db: Session,
    course: Courses,
    target_date: date,
    now: datetime | None = None,
    config: BookingConfig | None = None,
    redis: Redis | None = None,
) -> SlotListing:
    """
    Calculate bookable start times for a course (advisory).

    Returns:
        SlotListing with the day's window and ascending start times.
        A closed day yields an empty list; window.is_closed tells why.
    """
    config = config or get_booking_config()
    now = now or datetime.now()

    # Step 1: Window
    window = get_window(db, target_date, config)
    listing = SlotListing(window=window, duration_minutes=course.duration_minutes)
    if window.is_closed:
        return listing

    # Step 2: Base grid, past slots already dropped (Level 1)
    base_times = _get_base_times(window, config, now, redis)

    # Step 3: Reservations on that date
    reservations = get_day_reservations(db, window.date)

    # Step 4: Filter by closing time and overlap
    duration = timedelta(minutes=course.duration_minutes)
    for time_str in sorted(base_times):
        start = window.at(time_str_to_minutes(time_str))
        if check_interval(window, start, start + duration, reservations, now) is None:
            listing.times.append(start)

    return listing


# ── Base times (Level 1 with cache) ─────────────────────────────────────


def _get_base_times(
    window: DayWindow,
    config: BookingConfig,
    now: datetime,
    redis: Redis | None,
) -> list[str]:
    """Get base grid times, using Redis cache when available."""
    if redis is not None:
        store = SlotsRedisStore(redis)
        try:
            cached = store.get_available_slots(window.date, now)
            if cached is not None:
                return cached

            # Cache miss: calculate and store
            slots = window_slots(window, config, now)
            store.store_day_slots(window.date, slots)
            return [time_str for time_str, _ in slots]
        except RedisError:
            logger.exception(f"Slot cache unavailable for {window.date}, calculating on the fly")

    # No Redis: calculate on the fly
    slots = window_slots(window, config, now)
    return [time_str for time_str, _ in slots]


# ── Database helpers ─────────────────────────────────────────────────────


def get_day_reservations(
    db: Session,
    target_date: date,
    exclude_id: int | None = None,
) -> list[Reservations]:
    """Confirmed reservations whose interval touches target_date."""
    day_start = datetime.combine(target_date, time.min)
    return get_overlapping_reservations(
        db, day_start, day_start + timedelta(days=1), exclude_id
    )


def get_overlapping_reservations(
    db: Session,
    start: datetime,
    end: datetime,
    exclude_id: int | None = None,
) -> list[Reservations]:
    """Confirmed reservations overlapping [start, end)."""
    query = db.query(Reservations).filter(
        Reservations.status == "confirmed",
        Reservations.start_time < end,
        Reservations.end_time > start,
    )
    if exclude_id is not None:
        query = query.filter(Reservations.id != exclude_id)
    return query.order_by(Reservations.start_time).all()
