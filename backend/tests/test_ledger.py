import logging
import threading
from datetime import time, timedelta

import pytest

from helpers import DAY, NOW, at
from pointbook.errors import (
    DomainException,
    InsufficientPointsException,
    NotFoundException,
    SlotConflictException,
    UnauthorizedException,
    ValidationException,
)
from pointbook.models import Courses, PointLedgerEntries, Profiles, Reservations, ResourceLocks
from pointbook.services.notifications import list_notifications
from pointbook.services.profiles import ledger_total
from pointbook.services.reservation_ledger import book, cancel, credit_points, reschedule
from pointbook.services.slots import BookingConfig

CONFIG = BookingConfig()


def _book(db, user_id, course_id, start, now=NOW):
    return book(db, user_id, course_id, start, now=now, config=CONFIG)


def _balance(db, user_id):
    db.expire_all()
    return db.get(Profiles, user_id).current_points


def _entries(db, user_id):
    return (
        db.query(PointLedgerEntries)
        .filter(PointLedgerEntries.user_id == user_id)
        .order_by(PointLedgerEntries.id)
        .all()
    )


# ──────────────────────────────────────────────────────────────────────────────
# book
# ──────────────────────────────────────────────────────────────────────────────

def test_book_debits_points_and_confirms(db, seed):
    user_id = seed.profile(points=300)
    course_id = seed.course(price=100, duration=90)

    reservation = _book(db, user_id, course_id, at(13))

    assert reservation.status == "confirmed"
    assert reservation.start_time == at(13)
    assert reservation.end_time == at(14, 30)
    assert _balance(db, user_id) == 200

    debit = _entries(db, user_id)[-1]
    assert debit.amount == -100
    assert debit.entry_type == "booking"
    assert debit.reservation_id == reservation.id
    assert ledger_total(db, user_id) == 200


def test_insufficient_points_leaves_no_trace(db, seed):
    user_id = seed.profile(points=50)
    course_id = seed.course(price=100)

    with pytest.raises(InsufficientPointsException) as exc_info:
        _book(db, user_id, course_id, at(13))

    assert exc_info.value.details == {"current_points": 50, "required": 100}
    assert _balance(db, user_id) == 50
    assert db.query(Reservations).count() == 0
    assert len(_entries(db, user_id)) == 1


def test_balance_is_checked_before_availability(db, seed):
    user_id = seed.profile(points=50)
    course_id = seed.course(price=100)
    seed.override(DAY, time(10, 0), time(18, 0), is_closed=True)

    with pytest.raises(InsufficientPointsException):
        _book(db, user_id, course_id, at(13))


def test_exact_balance_is_enough(db, seed):
    user_id = seed.profile(points=100)
    course_id = seed.course(price=100)

    _book(db, user_id, course_id, at(13))

    assert _balance(db, user_id) == 0


@pytest.mark.parametrize(
    "start, reason",
    [
        (at(10, 30), "overlap"),
        (at(17, 30), "past_close"),
        (at(9, 0), "before_open"),
        (at(7, 30), "in_past"),
    ],
)
def test_unbookable_interval_is_a_conflict(db, seed, start, reason):
    other_id = seed.profile()
    user_id = seed.profile(points=300)
    course_id = seed.course(price=100, duration=60)
    seed.reservation(other_id, course_id, at(10), at(11))

    with pytest.raises(SlotConflictException) as exc_info:
        _book(db, user_id, course_id, start)

    assert exc_info.value.details["reason"] == reason
    assert _balance(db, user_id) == 300
    assert db.query(Reservations).filter(Reservations.user_id == user_id).count() == 0


def test_closed_day_is_a_conflict(db, seed):
    user_id = seed.profile(points=300)
    course_id = seed.course(price=100)
    seed.override(DAY, time(10, 0), time(18, 0), is_closed=True)

    with pytest.raises(SlotConflictException) as exc_info:
        _book(db, user_id, course_id, at(13))

    assert exc_info.value.details["reason"] == "closed"


def test_start_with_seconds_cannot_run_past_close(db, seed):
    user_id = seed.profile(points=300)
    course_id = seed.course(price=100, duration=60)

    with pytest.raises(SlotConflictException) as exc_info:
        _book(db, user_id, course_id, at(17) + timedelta(seconds=30))

    assert exc_info.value.details["reason"] == "past_close"
    assert _balance(db, user_id) == 300
    assert db.query(Reservations).count() == 0


def test_opening_time_with_seconds_is_respected(db, seed):
    user_id = seed.profile(points=300)
    course_id = seed.course(price=100, duration=60)
    seed.override(DAY, time(10, 0, 30), time(18, 0))

    with pytest.raises(SlotConflictException) as exc_info:
        _book(db, user_id, course_id, at(10))

    assert exc_info.value.details["reason"] == "before_open"


def test_missing_calendar_lock_row_fails_without_writing(db, seed):
    user_id = seed.profile(points=300)
    course_id = seed.course(price=100)

    def drop_lock(session):
        session.query(ResourceLocks).delete()
        session.commit()

    seed.read(drop_lock)

    with pytest.raises(DomainException) as exc_info:
        _book(db, user_id, course_id, at(13))

    assert exc_info.value.code == "CalendarLockMissing"
    assert exc_info.value.status_code == 500
    assert _balance(db, user_id) == 300
    assert db.query(ResourceLocks).count() == 0
    assert db.query(Reservations).count() == 0


def test_back_to_back_bookings(db, seed):
    user_id = seed.profile(points=300)
    course_id = seed.course(price=100, duration=60)

    _book(db, user_id, course_id, at(10))
    _book(db, user_id, course_id, at(11))

    assert _balance(db, user_id) == 100


def test_unknown_user_or_course(db, seed):
    user_id = seed.profile(points=300)
    course_id = seed.course()

    with pytest.raises(NotFoundException):
        _book(db, 9999, course_id, at(13))
    with pytest.raises(NotFoundException):
        _book(db, user_id, 9999, at(13))


def test_duration_is_fixed_at_booking(db, seed):
    user_id = seed.profile(points=300)
    course_id = seed.course(price=100, duration=60)
    reservation = _book(db, user_id, course_id, at(13))

    db.get(Courses, course_id).duration_minutes = 120
    db.commit()

    db.expire_all()
    stored = db.get(Reservations, reservation.id)
    assert stored.end_time - stored.start_time == timedelta(minutes=60)


# ──────────────────────────────────────────────────────────────────────────────
# cancel
# ──────────────────────────────────────────────────────────────────────────────

def test_book_then_cancel_restores_balance(db, seed):
    user_id = seed.profile(points=300, display_name="Hana")
    course_id = seed.course(price=100, title="Color")
    reservation = _book(db, user_id, course_id, at(13))

    result = cancel(db, reservation.id, actor_id=user_id, now=NOW)

    assert result.refunded_points == 100
    assert result.already_cancelled is False
    assert result.reservation.status == "cancelled"
    assert _balance(db, user_id) == 300
    assert [e.entry_type for e in _entries(db, user_id)] == ["charge", "booking", "refund"]
    assert ledger_total(db, user_id) == 300

    notifications = list_notifications(db)
    assert len(notifications) == 1
    assert "Hana" in notifications[0].message
    assert "2031-03-10 13:00" in notifications[0].message
    assert "Color" in notifications[0].message


def test_cancel_is_idempotent(db, seed):
    user_id = seed.profile(points=300)
    course_id = seed.course(price=100)
    reservation = _book(db, user_id, course_id, at(13))

    cancel(db, reservation.id, actor_id=user_id, now=NOW)
    again = cancel(db, reservation.id, actor_id=user_id, now=NOW)

    assert again.already_cancelled is True
    assert again.refunded_points == 0
    assert _balance(db, user_id) == 300
    assert len(_entries(db, user_id)) == 3
    assert len(list_notifications(db)) == 1


def test_cancelled_slot_can_be_booked_again(db, seed):
    user_id = seed.profile(points=300)
    other_id = seed.profile(points=300)
    course_id = seed.course(price=100)
    reservation = _book(db, user_id, course_id, at(13))

    cancel(db, reservation.id, actor_id=user_id, now=NOW)
    rebooked = _book(db, other_id, course_id, at(13))

    assert rebooked.status == "confirmed"


def test_member_cannot_cancel_someone_elses_reservation(db, seed):
    owner_id = seed.profile(points=300)
    other_id = seed.profile()
    course_id = seed.course(price=100)
    reservation = _book(db, owner_id, course_id, at(13))

    with pytest.raises(UnauthorizedException):
        cancel(db, reservation.id, actor_id=other_id, now=NOW)
    assert _balance(db, owner_id) == 200


def test_member_cannot_cancel_started_reservation(db, seed):
    user_id = seed.profile(points=300)
    course_id = seed.course(price=100)
    reservation = _book(db, user_id, course_id, at(13))

    with pytest.raises(ValidationException):
        cancel(db, reservation.id, actor_id=user_id, now=at(13, 30))


def test_cancel_unknown_reservation(db, seed):
    user_id = seed.profile()

    with pytest.raises(NotFoundException):
        cancel(db, 9999, actor_id=user_id, now=NOW)


def test_admin_cancel_refunds_without_notifying(db, seed):
    admin_id = seed.admin()
    user_id = seed.profile(points=300)
    course_id = seed.course(price=100)
    reservation = _book(db, user_id, course_id, at(13))

    # Admins may cancel reservations that already started
    result = cancel(db, reservation.id, actor_id=admin_id, by_admin=True, now=at(13, 30))

    assert result.refunded_points == 100
    assert _balance(db, user_id) == 300
    refund = _entries(db, user_id)[-1]
    assert refund.entry_type == "admin_cancel"
    assert refund.created_by == admin_id
    assert list_notifications(db) == []


def test_admin_cancel_requires_admin(db, seed):
    user_id = seed.profile(points=300)
    course_id = seed.course(price=100)
    reservation = _book(db, user_id, course_id, at(13))

    with pytest.raises(UnauthorizedException):
        cancel(db, reservation.id, actor_id=user_id, by_admin=True, now=NOW)


def test_refund_uses_current_course_price(db, seed, caplog):
    user_id = seed.profile(points=300)
    course_id = seed.course(price=100)
    reservation = _book(db, user_id, course_id, at(13))

    db.get(Courses, course_id).price_points = 150
    db.commit()

    with caplog.at_level(logging.WARNING, logger="pointbook.services.reservation_ledger"):
        result = cancel(db, reservation.id, actor_id=user_id, now=NOW)

    assert result.refunded_points == 150
    assert _balance(db, user_id) == 350
    assert "differs from booking charge" in caplog.text
    assert "charged 100 pt" in _entries(db, user_id)[-1].description
    assert ledger_total(db, user_id) == 350


# ──────────────────────────────────────────────────────────────────────────────
# reschedule
# ──────────────────────────────────────────────────────────────────────────────

def test_reschedule_moves_without_touching_points(db, seed):
    admin_id = seed.admin()
    user_id = seed.profile(points=300)
    course_id = seed.course(price=100, duration=60)
    reservation = _book(db, user_id, course_id, at(13))

    result = reschedule(db, admin_id, reservation.id, at(15), at(16))

    assert result.reservation.start_time == at(15)
    assert result.reservation.end_time == at(16)
    assert result.caveat is None
    assert _balance(db, user_id) == 200
    assert len(_entries(db, user_id)) == 2


def test_reschedule_with_new_length_reports_caveat(db, seed):
    admin_id = seed.admin()
    user_id = seed.profile(points=300)
    course_id = seed.course(price=100, duration=60)
    reservation = _book(db, user_id, course_id, at(13))

    result = reschedule(db, admin_id, reservation.id, at(13), at(14, 30))

    assert "90 min" in result.caveat
    assert _balance(db, user_id) == 200


def test_reschedule_may_overlap_itself(db, seed):
    admin_id = seed.admin()
    user_id = seed.profile(points=300)
    course_id = seed.course(price=100, duration=60)
    reservation = _book(db, user_id, course_id, at(13))

    result = reschedule(db, admin_id, reservation.id, at(13, 30), at(14, 30))

    assert result.reservation.start_time == at(13, 30)


def test_reschedule_onto_another_reservation_conflicts(db, seed):
    admin_id = seed.admin()
    user_id = seed.profile(points=300)
    course_id = seed.course(price=100, duration=60)
    first = _book(db, user_id, course_id, at(13))
    second = _book(db, user_id, course_id, at(15))

    with pytest.raises(SlotConflictException) as exc_info:
        reschedule(db, admin_id, second.id, at(13, 30), at(14, 30))

    assert exc_info.value.details["conflicting_reservation_id"] == first.id
    db.expire_all()
    assert db.get(Reservations, second.id).start_time == at(15)


def test_reschedule_rejects_inverted_interval(db, seed):
    admin_id = seed.admin()

    with pytest.raises(ValidationException):
        reschedule(db, admin_id, 1, at(14), at(13))


def test_reschedule_cancelled_reservation(db, seed):
    admin_id = seed.admin()
    user_id = seed.profile(points=300)
    course_id = seed.course(price=100)
    reservation = _book(db, user_id, course_id, at(13))
    cancel(db, reservation.id, actor_id=user_id, now=NOW)

    with pytest.raises(ValidationException):
        reschedule(db, admin_id, reservation.id, at(15), at(16))


def test_reschedule_requires_admin(db, seed):
    user_id = seed.profile(points=300)
    course_id = seed.course(price=100)
    reservation = _book(db, user_id, course_id, at(13))

    with pytest.raises(UnauthorizedException):
        reschedule(db, user_id, reservation.id, at(15), at(16))


# ──────────────────────────────────────────────────────────────────────────────
# credit_points
# ──────────────────────────────────────────────────────────────────────────────

def test_member_charges_own_balance(db, seed):
    user_id = seed.profile()

    result = credit_points(db, actor_id=user_id, user_id=user_id, amount=500)

    assert result.profile.current_points == 500
    assert result.entry.entry_type == "charge"
    assert ledger_total(db, user_id) == 500


def test_member_cannot_credit_others(db, seed):
    user_id = seed.profile()
    other_id = seed.profile()

    with pytest.raises(UnauthorizedException):
        credit_points(db, actor_id=user_id, user_id=other_id, amount=500)


def test_member_cannot_debit_self(db, seed):
    user_id = seed.profile(points=100)

    with pytest.raises(ValidationException):
        credit_points(db, actor_id=user_id, user_id=user_id, amount=-50)


def test_admin_adjusts_any_balance(db, seed):
    admin_id = seed.admin()
    user_id = seed.profile(points=100)

    granted = credit_points(db, actor_id=admin_id, user_id=user_id, amount=250, description="Campaign")
    assert granted.entry.entry_type == "admin_credit"
    assert granted.entry.description == "Campaign"
    assert granted.entry.created_by == admin_id

    corrected = credit_points(db, actor_id=admin_id, user_id=user_id, amount=-300)
    assert corrected.profile.current_points == 50
    assert ledger_total(db, user_id) == 50


def test_admin_debit_cannot_go_negative(db, seed):
    admin_id = seed.admin()
    user_id = seed.profile(points=100)

    with pytest.raises(InsufficientPointsException):
        credit_points(db, actor_id=admin_id, user_id=user_id, amount=-101)
    assert _balance(db, user_id) == 100


@pytest.mark.parametrize("amount", [0, 1.5, True])
def test_credit_amount_must_be_nonzero_integer(db, seed, amount):
    user_id = seed.profile()

    with pytest.raises(ValidationException):
        credit_points(db, actor_id=user_id, user_id=user_id, amount=amount)


def test_balance_matches_ledger_after_mixed_operations(db, seed):
    admin_id = seed.admin()
    user_id = seed.profile(points=300)
    course_id = seed.course(price=120, duration=60)

    first = _book(db, user_id, course_id, at(10))
    _book(db, user_id, course_id, at(11))
    cancel(db, first.id, actor_id=user_id, now=NOW)
    credit_points(db, actor_id=user_id, user_id=user_id, amount=40)
    credit_points(db, actor_id=admin_id, user_id=user_id, amount=-20)
    with pytest.raises(SlotConflictException):
        _book(db, user_id, course_id, at(11, 30))

    assert _balance(db, user_id) == 200
    assert ledger_total(db, user_id) == 200


# ──────────────────────────────────────────────────────────────────────────────
# Concurrency
# ──────────────────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("second_start", [at(14), at(14, 30)])
def test_concurrent_bookings_admit_exactly_one(session_factory, seed, second_start):
    course_id = seed.course(price=100, duration=60)
    users = [seed.profile(points=100), seed.profile(points=100)]
    starts = [at(14), second_start]
    barrier = threading.Barrier(2)
    booked, conflicts, failures = [], [], []

    def attempt(user_id, start):
        session = session_factory()
        try:
            barrier.wait()
            booked.append(book(session, user_id, course_id, start, now=NOW, config=CONFIG).user_id)
        except SlotConflictException as exc:
            conflicts.append(exc)
        except Exception as exc:
            failures.append(exc)
        finally:
            session.close()

    threads = [threading.Thread(target=attempt, args=args) for args in zip(users, starts)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert failures == []
    assert len(booked) == 1
    assert len(conflicts) == 1

    def check(session):
        confirmed = session.query(Reservations).filter(Reservations.status == "confirmed").all()
        assert len(confirmed) == 1
        for user_id in users:
            points = session.get(Profiles, user_id).current_points
            assert points == (0 if user_id == booked[0] else 100)
            assert ledger_total(session, user_id) == points

    seed.read(check)
