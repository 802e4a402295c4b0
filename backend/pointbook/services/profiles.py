"""
Profile lookups shared by the ledger and the API layer.
"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..errors import NotFoundException, UnauthorizedException
from ..models import PointLedgerEntries, Profiles


def get_profile(db: Session, user_id: int, for_update: bool = False) -> Profiles:
    """Get profile by id, optionally row-locked. Raises NotFoundException."""
    query = db.query(Profiles).filter(Profiles.id == user_id)
    if for_update:
        query = query.with_for_update()
    profile = query.one_or_none()
    if not profile:
        raise NotFoundException(f"Profile {user_id} not found", details={"user_id": user_id})
    return profile


def require_admin(db: Session, admin_id: Optional[int]) -> Profiles:
    """Resolve the acting admin. Unknown ids and non-admins are both Unauthorized."""
    admin = db.get(Profiles, admin_id) if admin_id is not None else None
    if not admin or not admin.is_admin:
        raise UnauthorizedException(
            "Admin rights required",
            details={"admin_id": admin_id},
        )
    return admin


def ledger_total(db: Session, user_id: int) -> int:
    """Sum of a user's ledger entries; equals current_points when consistent."""
    total = (
        db.query(func.coalesce(func.sum(PointLedgerEntries.amount), 0))
        .filter(PointLedgerEntries.user_id == user_id)
        .scalar()
    )
    return int(total)


def list_ledger(db: Session, user_id: int, limit: int = 50, offset: int = 0) -> list[PointLedgerEntries]:
    """Point history, newest first."""
    return (
        db.query(PointLedgerEntries)
        .filter(PointLedgerEntries.user_id == user_id)
        .order_by(PointLedgerEntries.created_at.desc(), PointLedgerEntries.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
