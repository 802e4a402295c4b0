# backend/pointbook/schemas/slots.py
"""
Pydantic schemas for slots API.
"""

from datetime import date, datetime
from pydantic import BaseModel, Field

from .schedules import DayWindowRead


class SlotsDayResponse(BaseModel):
    """Bookable start times for a course on a date (advisory)."""
    course_id: int
    date: date
    duration_minutes: int
    window: DayWindowRead = Field(description="Business hours; window.is_closed distinguishes a closed day from a full one")
    slots: list[datetime]


class SlotDebugEntry(BaseModel):
    time: str  # "HH:MM"
    starts_at: datetime


class SlotsGridResponse(BaseModel):
    """Level 1 grid (for debugging/admin)."""
    date: date
    slots: list[SlotDebugEntry]
    total_slots: int
    slot_step_minutes: int = Field(description="Grid step in minutes (15/30/60)")
