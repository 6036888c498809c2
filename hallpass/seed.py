from __future__ import annotations

from sqlalchemy import select

from .database import Base, engine, SessionLocal
from .models import Location, Student


def upsert_defaults() -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        defaults_locations = [
            ("north-high", "ROOM-101", "Room 101"),
            ("north-high", "LIBRARY", "Library"),
            ("north-high", "NURSE", "Nurse's Office"),
            ("south-middle", "ROOM-101", "Room 101"),
            ("south-middle", "GYM", "Gymnasium"),
        ]
        for school_id, code, name in defaults_locations:
            exists = db.execute(
                select(Location).where(Location.school_id == school_id, Location.code == code)
            ).scalar_one_or_none()
            if not exists:
                db.add(Location(school_id=school_id, code=code, name=name, is_active=True))

        defaults_students = [
            ("Ada Lopez", "north-high", "QR-NH-0001", None),
            ("Ben Okafor", "north-high", "QR-NH-0002", "04A1B2C3"),
            ("Chloe Park", "south-middle", "QR-SM-0001", None),
        ]
        for full_name, school_id, qr_value, card_uid in defaults_students:
            if not db.execute(select(Student).where(Student.qr_value == qr_value)).scalar_one_or_none():
                db.add(Student(full_name=full_name, school_id=school_id, qr_value=qr_value, card_uid=card_uid))

        db.commit()
    finally:
        db.close()


def main() -> None:
    upsert_defaults()
    print("Seed complete.")


if __name__ == "__main__":
    main()
