# backend/pointbook/routers/profiles.py
"""
Member profile, point history and simulated point purchase.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..database import atomic, get_db
from ..models import Profiles, Reservations
from ..schemas.profiles import (
    LedgerEntryRead,
    PointCharge,
    PointOperationResponse,
    ProfileCreate,
    ProfileRead,
    ProfileUpdate,
)
from ..schemas.reservations import ReservationRead
from ..services import reservation_ledger
from ..services.profiles import get_profile, list_ledger

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.post("/", response_model=ProfileRead, status_code=status.HTTP_201_CREATED)
def create_profile(
    data: ProfileCreate,
    db: Session = Depends(get_db),
):
    """Called by the sign-up flow once the identity provider created the user."""
    with atomic(db):
        obj = Profiles(display_name=data.display_name, current_points=0, is_admin=False)
        db.add(obj)
    db.refresh(obj)
    return obj


@router.get("/{id}", response_model=ProfileRead)
def get_profile_by_id(id: int, db: Session = Depends(get_db)):
    return get_profile(db, id)


@router.patch("/{id}", response_model=ProfileRead)
def update_profile(
    id: int,
    data: ProfileUpdate,
    db: Session = Depends(get_db),
):
    with atomic(db):
        obj = get_profile(db, id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(obj, field, value)
    db.refresh(obj)
    return obj


@router.get("/{id}/ledger", response_model=list[LedgerEntryRead])
def get_ledger(
    id: int,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """
    Get point history.
    Ordered by created_at DESC (newest first).
    """
    get_profile(db, id)
    return list_ledger(db, id, limit=limit, offset=offset)


@router.get("/{id}/reservations", response_model=list[ReservationRead])
def get_reservations(
    id: int,
    include_cancelled: bool = False,
    db: Session = Depends(get_db),
):
    """Member's reservations, soonest first."""
    get_profile(db, id)
    query = db.query(Reservations).filter(Reservations.user_id == id)
    if not include_cancelled:
        query = query.filter(Reservations.status != "cancelled")
    return query.order_by(Reservations.start_time).all()


@router.post("/{id}/charge", response_model=PointOperationResponse)
def charge_points(
    id: int,
    data: PointCharge,
    db: Session = Depends(get_db),
):
    """
    Top up own balance (simulated purchase, no payment provider).
    """
    result = reservation_ledger.credit_points(db, actor_id=id, user_id=id, amount=data.amount)
    return PointOperationResponse(
        success=True,
        user_id=id,
        new_balance=result.profile.current_points,
        entry_id=result.entry.id,
        message=f"Charged {data.amount} pt",
    )
