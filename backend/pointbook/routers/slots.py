# backend/pointbook/routers/slots.py
"""
Slots API endpoints.

GET /slots       - Bookable start times for a course on a date (Level 2)
GET /slots/grid  - Raw day grid (Level 1, debug)

Both are advisory: booking re-checks availability at commit time.
"""

from datetime import datetime
from fastapi import APIRouter, Depends, Query
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..errors import NotFoundException
from ..models import Courses
from ..redis_client import get_redis
from ..schemas.schedules import DayWindowRead
from ..schemas.slots import SlotDebugEntry, SlotsDayResponse, SlotsGridResponse
from ..services.slots import (
    calculate_day_slots,
    get_booking_config,
    list_available_slots,
    parse_date,
)


router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/", response_model=SlotsDayResponse)
def get_slots_day(
    course_id: int,
    target_date: str = Query(..., alias="date", description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    """Get available start times for a course on a specific day."""
    day = parse_date(target_date)

    course = db.get(Courses, course_id)
    if not course:
        raise NotFoundException(f"Course {course_id} not found", details={"course_id": course_id})

    listing = list_available_slots(
        db=db,
        course=course,
        target_date=day,
        config=get_booking_config(),
        redis=redis,
    )

    return SlotsDayResponse(
        course_id=course.id,
        date=day,
        duration_minutes=listing.duration_minutes,
        window=DayWindowRead.model_validate(listing.window),
        slots=listing.times,
    )


@router.get("/grid", response_model=SlotsGridResponse)
def get_slots_grid(
    target_date: str = Query(..., alias="date", description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
):
    """Level 1 grid for a date, always recalculated (admin/debug endpoint)."""
    config = get_booking_config()
    day = parse_date(target_date)
    slots = calculate_day_slots(db, day, config, datetime.now())

    entries = [
        SlotDebugEntry(time=time_str, starts_at=datetime.fromtimestamp(start_ts))
        for time_str, start_ts in slots
    ]
    return SlotsGridResponse(
        date=day,
        slots=entries,
        total_slots=len(entries),
        slot_step_minutes=config.slot_step_minutes,
    )
