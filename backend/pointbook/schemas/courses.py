# backend/pointbook/schemas/courses.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class CourseCreate(BaseModel):
    admin_id: int
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    price_points: int = Field(..., ge=0)
    duration_minutes: int = Field(..., gt=0)


class CourseUpdate(BaseModel):
    admin_id: int
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price_points: Optional[int] = Field(None, ge=0)
    duration_minutes: Optional[int] = Field(None, gt=0)


class CourseRead(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    price_points: int
    duration_minutes: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
