# backend/pointbook/schemas/notifications.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class NotificationRead(BaseModel):
    id: int
    message: str
    reservation_id: Optional[int] = None
    created_at: datetime

    model_config = {"from_attributes": True}
