from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from .config import settings
from .errors import SlotConflictException


def build_engine(database_url: str) -> Engine:
    """
    Create the SQLAlchemy engine.

    SQLite gets two connection hooks:
    - foreign keys switched on for every connection
    - every transaction opened with BEGIN IMMEDIATE, so the write lock is
      taken before the first read and commit-time rechecks cannot race
    """
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    # check_same_thread=False: FastAPI runs sync endpoints in a threadpool
    engine = create_engine(
        database_url,
        connect_args={
            "check_same_thread": False,
            "timeout": settings.sqlite_busy_timeout_seconds,
        },
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _):
        # Hand transaction control to SQLAlchemy (see "begin" below)
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


engine = build_engine(settings.resolved_database_url)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)


# Dependency for FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """
    Unit of work: commit when the block succeeds, roll back otherwise.

    A storage lock timeout is reported as a retryable slot conflict.
    """
    try:
        yield db
        db.commit()
    except OperationalError as exc:
        db.rollback()
        if "locked" in str(exc.orig).lower():
            raise SlotConflictException(
                "Calendar is busy, please retry",
                code="ResourceBusy",
            ) from exc
        raise
    except Exception:
        db.rollback()
        raise
