"""
Admin notification inbox.

Append-only from the engine side; the admin dashboard reads and deletes.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..errors import NotFoundException
from ..models import AdminNotifications

logger = logging.getLogger(__name__)


def push_notification(
    db: Session,
    message: str,
    reservation_id: Optional[int] = None,
) -> AdminNotifications:
    """Append a notification inside the caller's unit of work."""
    obj = AdminNotifications(message=message, reservation_id=reservation_id)
    db.add(obj)
    db.flush()
    logger.info(f"Admin notification queued: {message}")
    return obj


def list_notifications(db: Session, limit: int = 5) -> list[AdminNotifications]:
    return (
        db.query(AdminNotifications)
        .order_by(AdminNotifications.created_at.desc(), AdminNotifications.id.desc())
        .limit(limit)
        .all()
    )


def delete_notification(db: Session, notification_id: int) -> None:
    obj = db.get(AdminNotifications, notification_id)
    if not obj:
        raise NotFoundException(
            f"Notification {notification_id} not found",
            details={"notification_id": notification_id},
        )
    db.delete(obj)
    db.flush()
