from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Text,
    Time,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata

RESERVATION_STATUSES = ('confirmed', 'cancelled')
LEDGER_ENTRY_TYPES = ('booking', 'refund', 'charge', 'admin_credit', 'admin_cancel')


class Profiles(Base):
    __tablename__ = 'profiles'
    __table_args__ = (
        CheckConstraint('current_points >= 0', name='ck_profiles_points_non_negative'),
    )

    id = Column(Integer, primary_key=True)
    display_name = Column(Text)
    current_points = Column(Integer, nullable=False, server_default='0')
    admin_notes = Column(Text)
    is_admin = Column(Boolean, nullable=False, server_default='0')
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    reservations = relationship('Reservations', back_populates='user')
    ledger_entries = relationship(
        'PointLedgerEntries',
        back_populates='user',
        foreign_keys='PointLedgerEntries.user_id',
    )


class Courses(Base):
    __tablename__ = 'courses'
    __table_args__ = (
        CheckConstraint('price_points >= 0', name='ck_courses_price_non_negative'),
        CheckConstraint('duration_minutes > 0', name='ck_courses_duration_positive'),
    )

    id = Column(Integer, primary_key=True)
    title = Column(Text, nullable=False)
    description = Column(Text)
    price_points = Column(Integer, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    reservations = relationship('Reservations', back_populates='course')


class ScheduleOverrides(Base):
    __tablename__ = 'schedule_overrides'

    date = Column(Date, primary_key=True)
    open_time = Column(Time, nullable=False)
    close_time = Column(Time, nullable=False)
    is_closed = Column(Boolean, nullable=False, server_default='0')
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)


class Reservations(Base):
    __tablename__ = 'reservations'
    __table_args__ = (
        CheckConstraint('end_time > start_time', name='ck_reservations_interval'),
        Index('ix_reservations_status_start', 'status', 'start_time'),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False, index=True)
    course_id = Column(ForeignKey('courses.id'), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(Enum(*RESERVATION_STATUSES, name='reservation_status'), nullable=False, server_default='confirmed')
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    user = relationship('Profiles', back_populates='reservations')
    course = relationship('Courses', back_populates='reservations')
    ledger_entries = relationship('PointLedgerEntries', back_populates='reservation')


class PointLedgerEntries(Base):
    """Append-only. Rows are never updated or deleted."""

    __tablename__ = 'point_ledger_entries'

    id = Column(Integer, primary_key=True)
    user_id = Column(ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    entry_type = Column(Enum(*LEDGER_ENTRY_TYPES, name='ledger_entry_type'), nullable=False)
    description = Column(Text)
    reservation_id = Column(ForeignKey('reservations.id', ondelete='SET NULL'))
    created_by = Column(ForeignKey('profiles.id', ondelete='SET NULL'))
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    user = relationship('Profiles', back_populates='ledger_entries', foreign_keys=[user_id])
    reservation = relationship('Reservations', back_populates='ledger_entries')


class AdminNotifications(Base):
    __tablename__ = 'admin_notifications'

    id = Column(Integer, primary_key=True)
    message = Column(Text, nullable=False)
    reservation_id = Column(ForeignKey('reservations.id', ondelete='SET NULL'))
    created_at = Column(DateTime, nullable=False, default=datetime.now)


class ResourceLocks(Base):
    """One row per lockable resource; 'calendar' guards the shared schedule."""

    __tablename__ = 'resource_locks'

    name = Column(Text, primary_key=True)
