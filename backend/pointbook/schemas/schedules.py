# backend/pointbook/schemas/schedules.py

from datetime import date, time
from typing import Optional

from pydantic import BaseModel


class ScheduleOverrideWrite(BaseModel):
    """Request body for PUT /schedules/{date}"""
    admin_id: int
    open_time: Optional[time] = None
    close_time: Optional[time] = None
    is_closed: bool = False


class ScheduleOverrideRead(BaseModel):
    date: date
    open_time: time
    close_time: time
    is_closed: bool

    model_config = {"from_attributes": True}


class DayWindowRead(ScheduleOverrideRead):
    """Resolved business hours for a date"""
    is_default: bool
