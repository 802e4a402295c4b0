"""
Pytest configuration and shared fixtures for the booking engine tests.

Environment is set before the application is imported: settings are
read once at import time.
"""

import os

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["SLOTS_CACHE_ENABLED"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from pointbook.database import build_engine, get_db  # noqa: E402
from pointbook.main import app  # noqa: E402
from pointbook.models import (  # noqa: E402
    Base,
    Courses,
    PointLedgerEntries,
    Profiles,
    Reservations,
    ResourceLocks,
    ScheduleOverrides,
)
from pointbook.redis_client import get_redis  # noqa: E402
from pointbook.services.reservation_ledger import CALENDAR_LOCK  # noqa: E402


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so several connections can share one database."""
    engine = build_engine(f"sqlite:///{tmp_path / 'pointbook.db'}")
    Base.metadata.create_all(engine)
    with engine.begin() as conn:
        conn.execute(ResourceLocks.__table__.insert(), {"name": CALENDAR_LOCK})
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    """
    Session for service-level tests.

    Every transaction holds the SQLite write lock, so seed data before
    the first call on this session.
    """
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


class Seeder:
    """Writes fixtures through short-lived sessions that commit and close."""

    def __init__(self, factory):
        self.factory = factory

    def profile(self, points: int = 0, is_admin: bool = False, display_name: str = "Member") -> int:
        session = self.factory()
        try:
            profile = Profiles(display_name=display_name, current_points=points, is_admin=is_admin)
            session.add(profile)
            session.flush()
            if points:
                session.add(PointLedgerEntries(
                    user_id=profile.id,
                    amount=points,
                    entry_type="charge",
                    description="Initial balance",
                    created_by=profile.id,
                ))
            profile_id = profile.id
            session.commit()
            return profile_id
        finally:
            session.close()

    def admin(self) -> int:
        return self.profile(is_admin=True, display_name="Owner")

    def course(self, price: int = 100, duration: int = 60, title: str = "Cut") -> int:
        session = self.factory()
        try:
            course = Courses(title=title, price_points=price, duration_minutes=duration)
            session.add(course)
            session.flush()
            course_id = course.id
            session.commit()
            return course_id
        finally:
            session.close()

    def reservation(self, user_id: int, course_id: int, start, end, status: str = "confirmed") -> int:
        """Raw reservation row, no points moved."""
        session = self.factory()
        try:
            reservation = Reservations(
                user_id=user_id,
                course_id=course_id,
                start_time=start,
                end_time=end,
                status=status,
            )
            session.add(reservation)
            session.flush()
            reservation_id = reservation.id
            session.commit()
            return reservation_id
        finally:
            session.close()

    def override(self, day, open_time, close_time, is_closed: bool = False) -> None:
        session = self.factory()
        try:
            session.add(ScheduleOverrides(
                date=day,
                open_time=open_time,
                close_time=close_time,
                is_closed=is_closed,
            ))
            session.commit()
        finally:
            session.close()

    def read(self, fn):
        """Run fn(session) in a throwaway session and return its result."""
        session = self.factory()
        try:
            return fn(session)
        finally:
            session.close()


@pytest.fixture
def seed(session_factory):
    return Seeder(session_factory)


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: None
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
