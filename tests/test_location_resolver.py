from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from hallpass.attendance import resolve_location
from hallpass.database import Base, build_engine
from hallpass.models import Location
from hallpass.store import SqlStore


@pytest.fixture()
def store():
    mem = build_engine("sqlite://")
    Base.metadata.create_all(bind=mem)
    db = sessionmaker(bind=mem, autoflush=False, future=True)()
    try:
        db.add_all(
            [
                Location(id=1, school_id="north", code="ROOM-101", name="North 101"),
                Location(id=2, school_id="south", code="ROOM-101", name="South 101"),
                Location(id=3, school_id="north", code="ATTIC", name="Attic", is_active=False),
                Location(id=4, school_id="south", code="GYM", name="Gymnasium"),
            ]
        )
        db.commit()
        yield SqlStore(db)
    finally:
        db.close()
        mem.dispose()


def test_by_id_requires_active(store: SqlStore) -> None:
    assert resolve_location(store, location_id=4)["name"] == "Gymnasium"
    assert resolve_location(store, location_id=3) is None
    assert resolve_location(store, location_id=404) is None


def test_id_wins_over_code(store: SqlStore) -> None:
    loc = resolve_location(store, location_id=4, location_code="ROOM-101", school_id="north")
    assert loc["id"] == 4


def test_scoped_by_school(store: SqlStore) -> None:
    assert resolve_location(store, location_code="ROOM-101", school_id="south")["id"] == 2
    assert resolve_location(store, location_code="GYM", school_id="north") is None
    assert resolve_location(store, location_code="ATTIC", school_id="north") is None


def test_unscoped_lookup_is_global(store: SqlStore, caplog: pytest.LogCaptureFixture) -> None:
    assert resolve_location(store, location_code="GYM")["id"] == 4

    with caplog.at_level(logging.WARNING, logger="hallpass.attendance"):
        loc = resolve_location(store, location_code="ROOM-101")
    assert loc["id"] == 1
    assert "matches several schools" in caplog.text


def test_missing_selector_returns_none(store: SqlStore) -> None:
    assert resolve_location(store) is None
    assert resolve_location(store, location_code="", school_id="north") is None
