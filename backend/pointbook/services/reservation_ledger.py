# backend/pointbook/services/reservation_ledger.py
"""
Reservation Ledger: the only writer of balances, ledger entries and
reservation status.

Every operation is one unit of work (database.atomic): balance change,
ledger entry and reservation write become visible together or not at all.

Availability and balance are always re-checked here at commit time,
under lock, regardless of what the caller was shown earlier.

Lock order (to stay deadlock-free on row-locking engines):
    calendar → reservation → profile
On SQLite every transaction is BEGIN IMMEDIATE, which serializes writers.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..database import atomic
from ..errors import (
    DomainException,
    InsufficientPointsException,
    NotFoundException,
    SlotConflictException,
    UnauthorizedException,
    ValidationException,
)
from ..models import (
    Courses,
    PointLedgerEntries,
    Profiles,
    Reservations,
    ResourceLocks,
)
from .notifications import push_notification
from .profiles import get_profile, require_admin
from .slots.availability import check_interval, get_overlapping_reservations
from .slots.config import BookingConfig
from .slots.schedule import get_window

logger = logging.getLogger(__name__)

CALENDAR_LOCK = "calendar"

_CONFLICT_MESSAGES = {
    "closed": "The salon is closed on this date",
    "in_past": "The requested time is in the past",
    "before_open": "The requested time is before opening",
    "past_close": "The course would run past closing time",
    "overlap": "The requested time overlaps an existing reservation",
}


@dataclass
class CancelResult:
    reservation: Reservations
    refunded_points: int = 0
    already_cancelled: bool = False


@dataclass
class RescheduleResult:
    reservation: Reservations
    caveat: Optional[str] = None


@dataclass
class CreditResult:
    profile: Profiles
    entry: PointLedgerEntries


# ──────────────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────────────

def to_wall_clock(value: datetime) -> datetime:
    """All times are naive local wall-clock; aware inputs are converted."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def lock_calendar(db: Session) -> None:
    """Take the calendar-wide lock for the rest of the transaction."""
    lock = (
        db.query(ResourceLocks)
        .filter(ResourceLocks.name == CALENDAR_LOCK)
        .with_for_update()
        .one_or_none()
    )
    if lock is None:
        # Seeded by the initial migration and init_admin.py
        raise DomainException(
            f"Lock row '{CALENDAR_LOCK}' is missing; run migrations or init_admin.py",
            code="CalendarLockMissing",
        )


def _get_course(db: Session, course_id: int) -> Courses:
    course = db.get(Courses, course_id)
    if not course:
        raise NotFoundException(f"Course {course_id} not found", details={"course_id": course_id})
    return course


def _get_reservation_for_update(db: Session, reservation_id: int) -> Reservations:
    reservation = (
        db.query(Reservations)
        .filter(Reservations.id == reservation_id)
        .with_for_update()
        .one_or_none()
    )
    if not reservation:
        raise NotFoundException(
            f"Reservation {reservation_id} not found",
            details={"reservation_id": reservation_id},
        )
    return reservation


def _apply_points(
    db: Session,
    profile: Profiles,
    amount: int,
    entry_type: str,
    description: str,
    reservation_id: Optional[int] = None,
    created_by: Optional[int] = None,
) -> PointLedgerEntries:
    """Move the balance and append the matching ledger entry (1:1)."""
    new_balance = profile.current_points + amount
    if new_balance < 0:
        raise InsufficientPointsException(
            f"Insufficient points: {profile.current_points} < {-amount}",
            details={"current_points": profile.current_points, "required": -amount},
        )

    entry = PointLedgerEntries(
        user_id=profile.id,
        amount=amount,
        entry_type=entry_type,
        description=description,
        reservation_id=reservation_id,
        created_by=created_by,
    )
    db.add(entry)
    profile.current_points = new_balance
    db.flush()
    return entry


def _booking_debit(db: Session, reservation_id: int) -> Optional[int]:
    """Points actually charged when the reservation was booked, if recorded."""
    total = (
        db.query(func.sum(PointLedgerEntries.amount))
        .filter(
            PointLedgerEntries.reservation_id == reservation_id,
            PointLedgerEntries.entry_type == "booking",
        )
        .scalar()
    )
    return -int(total) if total is not None else None


def _validate_amount(amount) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationException("Amount must be an integer", details={"amount": amount})
    if amount == 0:
        raise ValidationException("Amount must not be zero", details={"amount": amount})
    return amount


# ──────────────────────────────────────────────────────────────────────────────
# Operations
# ──────────────────────────────────────────────────────────────────────────────

def book(
    db: Session,
    user_id: int,
    course_id: int,
    start_time: datetime,
    now: datetime | None = None,
    config: BookingConfig | None = None,
) -> Reservations:
    """
    Book a course for a user and pay with points.

    Raises:
        NotFoundException: unknown user or course
        InsufficientPointsException: balance below course price (checked first)
        SlotConflictException: closed, past, outside hours or overlapping
    """
    now = now or datetime.now()
    start_time = to_wall_clock(start_time)

    with atomic(db):
        lock_calendar(db)
        profile = get_profile(db, user_id, for_update=True)
        course = _get_course(db, course_id)

        if profile.current_points < course.price_points:
            logger.warning(
                f"Booking rejected for user {user_id}: "
                f"{profile.current_points} pt < {course.price_points} pt"
            )
            raise InsufficientPointsException(
                f"Insufficient points: {profile.current_points} < {course.price_points}",
                details={
                    "current_points": profile.current_points,
                    "required": course.price_points,
                },
            )

        # Commit-time recheck against the current reservation set
        end_time = start_time + timedelta(minutes=course.duration_minutes)
        window = get_window(db, start_time.date(), config)
        existing = get_overlapping_reservations(db, start_time, end_time)
        reason = check_interval(window, start_time, end_time, existing, now)
        if reason is not None:
            logger.warning(
                f"Booking rejected for user {user_id} at {start_time:%Y-%m-%d %H:%M}: {reason}"
            )
            raise SlotConflictException(
                _CONFLICT_MESSAGES[reason],
                details={
                    "reason": reason,
                    "start_time": start_time.isoformat(),
                    "end_time": end_time.isoformat(),
                },
            )

        reservation = Reservations(
            user_id=profile.id,
            course_id=course.id,
            start_time=start_time,
            end_time=end_time,
            status="confirmed",
        )
        db.add(reservation)
        db.flush()

        _apply_points(
            db,
            profile,
            -course.price_points,
            "booking",
            f"Booking: {course.title}",
            reservation_id=reservation.id,
            created_by=profile.id,
        )

    db.refresh(reservation)
    logger.info(
        f"Reservation {reservation.id} booked: user {user_id}, course {course_id}, "
        f"{reservation.start_time:%Y-%m-%d %H:%M}-{reservation.end_time:%H:%M}, "
        f"-{course.price_points} pt"
    )
    return reservation


def cancel(
    db: Session,
    reservation_id: int,
    actor_id: int,
    by_admin: bool = False,
    now: datetime | None = None,
) -> CancelResult:
    """
    Cancel a reservation and refund its course price.

    Cancelling an already-cancelled reservation is a no-op.
    A member may cancel only their own, not-yet-started reservations,
    and doing so notifies the admin inbox. Admin cancellations never notify.
    """
    now = now or datetime.now()

    with atomic(db):
        if by_admin:
            require_admin(db, actor_id)

        reservation = _get_reservation_for_update(db, reservation_id)

        if not by_admin and reservation.user_id != actor_id:
            raise UnauthorizedException(
                "Reservation belongs to another member",
                details={"reservation_id": reservation_id},
            )

        if reservation.status == "cancelled":
            logger.info(f"Reservation {reservation_id} already cancelled, nothing to do")
            return CancelResult(reservation=reservation, already_cancelled=True)

        if not by_admin and reservation.start_time < now:
            raise ValidationException(
                "Past reservations cannot be cancelled",
                details={"start_time": reservation.start_time.isoformat()},
            )

        profile = get_profile(db, reservation.user_id, for_update=True)
        course = _get_course(db, reservation.course_id)

        # Refund follows the course's current price
        refund = course.price_points
        if by_admin:
            entry_type, description = "admin_cancel", f"Admin cancellation: {course.title}"
        else:
            entry_type, description = "refund", f"Cancellation refund: {course.title}"

        charged = _booking_debit(db, reservation.id)
        if charged is not None and charged != refund:
            logger.warning(
                f"Reservation {reservation_id}: refund {refund} pt differs from "
                f"booking charge {charged} pt (course price changed)"
            )
            description += f" (charged {charged} pt, refunded at current price {refund} pt)"

        _apply_points(
            db,
            profile,
            refund,
            entry_type,
            description,
            reservation_id=reservation.id,
            created_by=actor_id,
        )
        reservation.status = "cancelled"
        db.flush()

        if not by_admin:
            push_notification(
                db,
                f"[Cancellation] {profile.display_name or 'unknown member'} cancelled "
                f"the reservation on {reservation.start_time:%Y-%m-%d %H:%M} ({course.title}).",
                reservation_id=reservation.id,
            )

    db.refresh(reservation)
    logger.info(
        f"Reservation {reservation_id} cancelled by "
        f"{'admin' if by_admin else 'member'} {actor_id}: +{refund} pt"
    )
    return CancelResult(reservation=reservation, refunded_points=refund)


def reschedule(
    db: Session,
    admin_id: int,
    reservation_id: int,
    new_start: datetime,
    new_end: datetime,
) -> RescheduleResult:
    """
    Move a reservation to a new interval (admin only).

    Only the no-overlap rule is enforced; admins may schedule outside
    business hours. Points are never adjusted, even if the length changes.
    """
    new_start = to_wall_clock(new_start)
    new_end = to_wall_clock(new_end)
    if new_start >= new_end:
        raise ValidationException(
            "new_start must be before new_end",
            details={"new_start": new_start.isoformat(), "new_end": new_end.isoformat()},
        )

    with atomic(db):
        require_admin(db, admin_id)
        lock_calendar(db)
        reservation = _get_reservation_for_update(db, reservation_id)

        if reservation.status == "cancelled":
            raise ValidationException(
                "Cancelled reservations cannot be rescheduled",
                details={"reservation_id": reservation_id},
            )

        conflicts = get_overlapping_reservations(db, new_start, new_end, exclude_id=reservation.id)
        if conflicts:
            logger.warning(
                f"Reschedule of reservation {reservation_id} rejected: "
                f"overlaps reservation {conflicts[0].id}"
            )
            raise SlotConflictException(
                _CONFLICT_MESSAGES["overlap"],
                details={
                    "reason": "overlap",
                    "conflicting_reservation_id": conflicts[0].id,
                },
            )

        old_start, old_end = reservation.start_time, reservation.end_time
        reservation.start_time = new_start
        reservation.end_time = new_end
        db.flush()

        course = _get_course(db, reservation.course_id)

    db.refresh(reservation)

    caveat = None
    new_minutes = int((new_end - new_start) / timedelta(minutes=1))
    if new_minutes != course.duration_minutes:
        caveat = (
            f"Reservation now lasts {new_minutes} min instead of the course's "
            f"{course.duration_minutes} min; points were not adjusted."
        )

    logger.info(
        f"Reservation {reservation_id} rescheduled by admin {admin_id}: "
        f"{old_start:%Y-%m-%d %H:%M}-{old_end:%H:%M} → "
        f"{new_start:%Y-%m-%d %H:%M}-{new_end:%H:%M}"
    )
    return RescheduleResult(reservation=reservation, caveat=caveat)


def credit_points(
    db: Session,
    actor_id: int,
    user_id: int,
    amount: int,
    description: Optional[str] = None,
) -> CreditResult:
    """
    Add points to a balance.

    A member may top up their own balance with a positive amount.
    An admin may adjust any balance by any non-zero amount, as long as
    the balance does not go negative.
    """
    amount = _validate_amount(amount)

    with atomic(db):
        actor = db.get(Profiles, actor_id)
        is_admin = bool(actor and actor.is_admin)

        if not is_admin:
            if actor_id != user_id:
                raise UnauthorizedException(
                    "Only admins can credit another member",
                    details={"actor_id": actor_id, "user_id": user_id},
                )
            if amount < 0:
                raise ValidationException(
                    "Charge amount must be positive",
                    details={"amount": amount},
                )

        profile = get_profile(db, user_id, for_update=True)
        entry = _apply_points(
            db,
            profile,
            amount,
            "admin_credit" if is_admin else "charge",
            description or ("Admin grant" if is_admin else "Point charge"),
            created_by=actor_id,
        )

    db.refresh(profile)
    db.refresh(entry)
    logger.info(
        f"Points {'+' if amount > 0 else ''}{amount} for user {user_id} "
        f"by {'admin' if is_admin else 'member'} {actor_id}; balance {profile.current_points}"
    )
    return CreditResult(profile=profile, entry=entry)
