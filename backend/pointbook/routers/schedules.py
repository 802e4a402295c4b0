# backend/pointbook/routers/schedules.py
# Business-hours overrides: PUT = upsert (admin), DELETE = revert to default (admin)

from datetime import timedelta

from fastapi import APIRouter, Depends, Query, status
from redis import Redis
from sqlalchemy.orm import Session

from ..database import atomic, get_db
from ..errors import NotFoundException
from ..redis_client import get_redis
from ..schemas.schedules import (
    DayWindowRead,
    ScheduleOverrideRead,
    ScheduleOverrideWrite,
)
from ..services.profiles import require_admin
from ..services.slots import get_window, invalidate_day_cache, parse_date
from ..services.slots.schedule import delete_override, list_overrides, set_override

router = APIRouter(prefix="/schedules", tags=["schedules"])


@router.get("/", response_model=list[ScheduleOverrideRead])
def list_schedule_overrides(
    start: str = Query(..., description="YYYY-MM-DD"),
    end: str | None = Query(None, description="YYYY-MM-DD, defaults to start + 6 days"),
    db: Session = Depends(get_db),
):
    """Overrides in [start, end]; dates without one use the default hours."""
    start_date = parse_date(start)
    end_date = parse_date(end) if end else start_date + timedelta(days=6)
    return list_overrides(db, start_date, end_date)


@router.get("/{day}/window", response_model=DayWindowRead)
def get_day_window(day: str, db: Session = Depends(get_db)):
    return DayWindowRead.model_validate(get_window(db, day))


@router.put("/{day}", response_model=ScheduleOverrideRead)
def put_schedule_override(
    day: str,
    data: ScheduleOverrideWrite,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    target_date = parse_date(day)
    with atomic(db):
        require_admin(db, data.admin_id)
        obj = set_override(
            db,
            target_date,
            open_time=data.open_time,
            close_time=data.close_time,
            is_closed=data.is_closed,
        )
    invalidate_day_cache(redis, [target_date])
    db.refresh(obj)
    return obj


@router.delete("/{day}", status_code=status.HTTP_204_NO_CONTENT)
def delete_schedule_override(
    day: str,
    admin_id: int,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    target_date = parse_date(day)
    with atomic(db):
        require_admin(db, admin_id)
        if not delete_override(db, target_date):
            raise NotFoundException(
                f"No schedule override for {target_date}",
                details={"date": target_date.isoformat()},
            )
    invalidate_day_cache(redis, [target_date])
