"""
Bootstrap: create tables, seed the calendar lock row and ensure an
admin profile exists.

Usage:
    ADMIN_DISPLAY_NAME="Salon owner" python init_admin.py
"""

import os
import sys
from pathlib import Path

from dotenv import load_dotenv

sys.path.insert(0, str(Path(__file__).resolve().parent / "backend"))

from pointbook.database import SessionLocal, atomic, engine  # noqa: E402
from pointbook.models import Base, Profiles, ResourceLocks  # noqa: E402
from pointbook.services.reservation_ledger import CALENDAR_LOCK  # noqa: E402


# ======================================================
# ENV
# ======================================================

load_dotenv()

ADMIN_DISPLAY_NAME = os.getenv("ADMIN_DISPLAY_NAME", "Administrator")


# ======================================================
# MAIN LOGIC
# ======================================================

def main():
    Base.metadata.create_all(engine)

    db = SessionLocal()
    try:
        with atomic(db):
            # --- calendar lock row ---
            if db.get(ResourceLocks, CALENDAR_LOCK) is None:
                db.add(ResourceLocks(name=CALENDAR_LOCK))

            # --- admin profile ---
            admin = db.query(Profiles).filter(Profiles.is_admin.is_(True)).first()
            if admin is None:
                admin = Profiles(
                    display_name=ADMIN_DISPLAY_NAME,
                    current_points=0,
                    is_admin=True,
                )
                db.add(admin)
                db.flush()
                print(f"✔ Admin profile created: id={admin.id} ({ADMIN_DISPLAY_NAME})")
            else:
                print(f"Admin profile already exists: id={admin.id}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
