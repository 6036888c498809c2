from __future__ import annotations

import sys
from pathlib import Path

from sqlalchemy import func, select

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from hallpass.database import SessionLocal
from hallpass.models import Location, Student
from hallpass.seed import upsert_defaults


def test_seed_is_idempotent() -> None:
    upsert_defaults()
    upsert_defaults()
    db = SessionLocal()
    try:
        rooms = db.execute(
            select(func.count()).select_from(Location).where(Location.code == "ROOM-101")
        ).scalar_one()
        assert rooms >= 2
        nh_rooms = db.execute(
            select(func.count())
            .select_from(Location)
            .where(Location.code == "ROOM-101", Location.school_id == "north-high")
        ).scalar_one()
        assert nh_rooms == 1
        ben = db.execute(select(Student).where(Student.qr_value == "QR-NH-0002")).scalar_one()
        assert ben.card_uid == "04A1B2C3"
    finally:
        db.close()
