# backend/pointbook/schemas/reservations.py

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ReservationCreate(BaseModel):
    user_id: int
    course_id: int
    start_time: datetime


class ReservationCancel(BaseModel):
    user_id: int


class AdminAction(BaseModel):
    admin_id: int


class ReservationReschedule(BaseModel):
    admin_id: int
    new_start: datetime
    new_end: datetime


class CourseSummary(BaseModel):
    id: int
    title: str
    price_points: int
    duration_minutes: int

    model_config = {"from_attributes": True}


class ReservationRead(BaseModel):
    id: int
    user_id: int
    course_id: int
    start_time: datetime
    end_time: datetime
    status: str  # confirmed, cancelled
    created_at: Optional[datetime] = None
    course: Optional[CourseSummary] = None

    model_config = {"from_attributes": True}


class CancelResponse(BaseModel):
    reservation: ReservationRead
    refunded_points: int
    already_cancelled: bool = Field(
        description="True when the reservation was already cancelled (no-op)"
    )


class RescheduleResponse(BaseModel):
    reservation: ReservationRead
    caveat: Optional[str] = None
