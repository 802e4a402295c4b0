# backend/pointbook/routers/admin.py
"""
Admin dashboard API: members, the calendar and the notification inbox.

The admin-area gateway authenticates the operator and supplies admin_id;
every endpoint still checks that admin_id belongs to an admin profile.
"""

from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..database import atomic, get_db
from ..models import Profiles, Reservations
from ..schemas.notifications import NotificationRead
from ..schemas.profiles import (
    AdminNotesUpdate,
    AdminProfileRead,
    LedgerEntryRead,
    MemberDetail,
    PointCredit,
    PointOperationResponse,
)
from ..schemas.reservations import (
    AdminAction,
    CancelResponse,
    ReservationRead,
    ReservationReschedule,
    RescheduleResponse,
)
from ..services import reservation_ledger
from ..services.notifications import delete_notification, list_notifications
from ..services.profiles import get_profile, ledger_total, list_ledger, require_admin
from ..services.slots import parse_date

router = APIRouter(prefix="/admin", tags=["admin"])


# ──────────────────────────────────────────────────────────────────────────────
# Members
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/profiles", response_model=list[AdminProfileRead])
def list_members(admin_id: int, db: Session = Depends(get_db)):
    require_admin(db, admin_id)
    return db.query(Profiles).order_by(Profiles.created_at.desc(), Profiles.id.desc()).all()


@router.get("/profiles/{id}", response_model=MemberDetail)
def get_member_detail(id: int, admin_id: int, db: Session = Depends(get_db)):
    """
    Member detail: reservations (newest first), point history and
    a ledger consistency check.
    """
    require_admin(db, admin_id)
    profile = get_profile(db, id)

    reservations = (
        db.query(Reservations)
        .filter(Reservations.user_id == id)
        .order_by(Reservations.start_time.desc())
        .all()
    )
    now = datetime.now()
    visits = sum(1 for r in reservations if r.status == "confirmed" and r.start_time < now)
    total = ledger_total(db, id)

    return MemberDetail(
        profile=AdminProfileRead.model_validate(profile),
        reservations=[ReservationRead.model_validate(r) for r in reservations],
        ledger=[LedgerEntryRead.model_validate(e) for e in list_ledger(db, id, limit=200)],
        visit_count=visits,
        ledger_total=total,
        balance_consistent=(total == profile.current_points),
    )


@router.patch("/profiles/{id}/notes", response_model=AdminProfileRead)
def update_admin_notes(
    id: int,
    data: AdminNotesUpdate,
    db: Session = Depends(get_db),
):
    with atomic(db):
        require_admin(db, data.admin_id)
        profile = get_profile(db, id)
        profile.admin_notes = data.admin_notes
    db.refresh(profile)
    return profile


@router.post("/profiles/{id}/credit", response_model=PointOperationResponse)
def credit_member(
    id: int,
    data: PointCredit,
    db: Session = Depends(get_db),
):
    """
    Manual point grant or correction.
    Amount can be positive (add) or negative (subtract), never below zero.
    """
    require_admin(db, data.admin_id)
    result = reservation_ledger.credit_points(
        db,
        actor_id=data.admin_id,
        user_id=id,
        amount=data.amount,
        description=data.description,
    )
    sign = "+" if data.amount > 0 else ""
    return PointOperationResponse(
        success=True,
        user_id=id,
        new_balance=result.profile.current_points,
        entry_id=result.entry.id,
        message=f"Credit {sign}{data.amount} pt: {result.entry.description}",
    )


# ──────────────────────────────────────────────────────────────────────────────
# Calendar
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/reservations", response_model=list[ReservationRead])
def list_calendar(
    admin_id: int,
    start: str = Query(..., description="YYYY-MM-DD"),
    end: str | None = Query(None, description="YYYY-MM-DD, defaults to start + 6 days"),
    db: Session = Depends(get_db),
):
    """Non-cancelled reservations starting within [start, end] (week view)."""
    require_admin(db, admin_id)
    start_date = parse_date(start)
    end_date = parse_date(end) if end else start_date + timedelta(days=6)

    range_start = datetime.combine(start_date, datetime.min.time())
    range_end = datetime.combine(end_date, datetime.min.time()) + timedelta(days=1)
    return (
        db.query(Reservations)
        .filter(
            Reservations.status != "cancelled",
            Reservations.start_time >= range_start,
            Reservations.start_time < range_end,
        )
        .order_by(Reservations.start_time)
        .all()
    )


@router.post("/reservations/{id}/cancel", response_model=CancelResponse)
def admin_cancel_reservation(
    id: int,
    data: AdminAction,
    db: Session = Depends(get_db),
):
    """Cancel any reservation, past ones included. Always refunds, never notifies."""
    result = reservation_ledger.cancel(db, reservation_id=id, actor_id=data.admin_id, by_admin=True)
    return CancelResponse(
        reservation=ReservationRead.model_validate(result.reservation),
        refunded_points=result.refunded_points,
        already_cancelled=result.already_cancelled,
    )


@router.post("/reservations/{id}/reschedule", response_model=RescheduleResponse)
def admin_reschedule_reservation(
    id: int,
    data: ReservationReschedule,
    db: Session = Depends(get_db),
):
    """Change start/end. Points are not adjusted; see `caveat`."""
    result = reservation_ledger.reschedule(
        db,
        admin_id=data.admin_id,
        reservation_id=id,
        new_start=data.new_start,
        new_end=data.new_end,
    )
    return RescheduleResponse(
        reservation=ReservationRead.model_validate(result.reservation),
        caveat=result.caveat,
    )


# ──────────────────────────────────────────────────────────────────────────────
# Notifications
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/notifications", response_model=list[NotificationRead])
def get_notifications(
    admin_id: int,
    limit: int = Query(5, ge=1, le=100),
    db: Session = Depends(get_db),
):
    require_admin(db, admin_id)
    return list_notifications(db, limit=limit)


@router.delete("/notifications/{id}", status_code=status.HTTP_204_NO_CONTENT)
def clear_notification(id: int, admin_id: int, db: Session = Depends(get_db)):
    with atomic(db):
        require_admin(db, admin_id)
        delete_notification(db, id)
