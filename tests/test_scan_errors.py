from __future__ import annotations

import sys
from pathlib import Path

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from hallpass.attendance import ScanRequest, ingest_scan
from hallpass.database import Base, build_engine
from hallpass.errors import NotFoundError, ValidationError
from hallpass.models import Location, ScanEvent, ScanSource, Student
from hallpass.store import SqlStore


@pytest.fixture()
def db_session():
    mem = build_engine("sqlite://")
    Base.metadata.create_all(bind=mem)
    db = sessionmaker(bind=mem, autoflush=False, future=True)()
    try:
        db.add(Student(full_name="Ben Okafor", school_id="north", qr_value="QR-BEN"))
        db.add(Location(school_id="north", code="ROOM-101", name="Room 101"))
        db.add(Location(school_id="north", code="OLD-LAB", name="Old Lab", is_active=False))
        db.add(Location(school_id="south", code="GYM", name="Gymnasium"))
        db.commit()
        yield db
    finally:
        db.close()
        mem.dispose()


def _event_count(db) -> int:
    return db.execute(select(func.count()).select_from(ScanEvent)).scalar_one()


@pytest.mark.parametrize(
    "request_",
    [
        ScanRequest(credential=None, location_code="ROOM-101"),
        ScanRequest(credential="", location_id=1),
        ScanRequest(credential="QR-BEN"),
    ],
)
def test_missing_fields_raise_validation(db_session, request_: ScanRequest) -> None:
    with pytest.raises(ValidationError):
        ingest_scan(SqlStore(db_session), request_, ScanSource.QR)
    assert _event_count(db_session) == 0


def test_unknown_credential_is_student_not_found(db_session) -> None:
    with pytest.raises(NotFoundError) as info:
        ingest_scan(SqlStore(db_session), ScanRequest(credential="nope", location_code="ROOM-101"), ScanSource.NFC)
    assert info.value.entity == "student"
    assert "card UID" in info.value.message


def test_qr_value_does_not_match_card_lookup(db_session) -> None:
    with pytest.raises(NotFoundError):
        ingest_scan(SqlStore(db_session), ScanRequest(credential="QR-BEN", location_code="ROOM-101"), ScanSource.NFC)


@pytest.mark.parametrize(
    "selector",
    [
        {"location_code": "NOWHERE"},
        {"location_code": "OLD-LAB"},
        # Student's school scopes the code lookup, so another school's code is not found
        {"location_code": "GYM"},
        {"location_id": 9999},
    ],
)
def test_unresolved_location_is_not_found(db_session, selector) -> None:
    with pytest.raises(NotFoundError) as info:
        ingest_scan(SqlStore(db_session), ScanRequest(credential="QR-BEN", **selector), ScanSource.QR)
    assert info.value.entity == "location"
    assert _event_count(db_session) == 0


def test_explicit_school_overrides_student_school(db_session) -> None:
    result = ingest_scan(
        SqlStore(db_session),
        ScanRequest(credential="QR-BEN", location_code="GYM", school_id="south"),
        ScanSource.QR,
    )
    assert result.location["code"] == "GYM"
