# backend/pointbook/routers/reservations.py
"""
Member-facing reservation operations.

The caller surface supplies a verified user_id (authentication is external).
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..errors import NotFoundException
from ..models import Reservations
from ..schemas.reservations import (
    CancelResponse,
    ReservationCancel,
    ReservationCreate,
    ReservationRead,
)
from ..services import reservation_ledger

router = APIRouter(prefix="/reservations", tags=["reservations"])


@router.post("/", response_model=ReservationRead, status_code=status.HTTP_201_CREATED)
def create_reservation(
    data: ReservationCreate,
    db: Session = Depends(get_db),
):
    """
    Book a course and pay with points.

    409 when the slot was taken (or became invalid) since it was listed;
    the caller should refetch slots and retry.
    """
    return reservation_ledger.book(
        db,
        user_id=data.user_id,
        course_id=data.course_id,
        start_time=data.start_time,
    )


@router.get("/{id}", response_model=ReservationRead)
def get_reservation(id: int, db: Session = Depends(get_db)):
    obj = db.get(Reservations, id)
    if not obj:
        raise NotFoundException(f"Reservation {id} not found", details={"reservation_id": id})
    return obj


@router.post("/{id}/cancel", response_model=CancelResponse)
def cancel_reservation(
    id: int,
    data: ReservationCancel,
    db: Session = Depends(get_db),
):
    """
    Cancel own reservation and get the points back.
    Repeating the call is a no-op (already_cancelled=true).
    """
    result = reservation_ledger.cancel(db, reservation_id=id, actor_id=data.user_id)
    return CancelResponse(
        reservation=ReservationRead.model_validate(result.reservation),
        refunded_points=result.refunded_points,
        already_cancelled=result.already_cancelled,
    )
