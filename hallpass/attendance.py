from __future__ import annotations

"""
Scan ingestion: identity and location resolution, entry/exit inference and the
single append path into ``scan_events``. Card assignment lives here too since it
is the only other write the service performs.
"""

import logging
import threading
import weakref
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Tuple

from sqlalchemy import insert, select, update

from .config import get_settings
from .errors import ConflictError, ConstraintViolation, NotFoundError, ValidationError
from .models import Direction, Location, ScanEvent, ScanSource, Student
from .store import Store


logger = logging.getLogger(__name__)


@dataclass
class ScanRequest:
    credential: Optional[str]
    location_id: Optional[int] = None
    location_code: Optional[str] = None
    school_id: Optional[str] = None
    direction: Optional[Direction] = None
    device_label: Optional[str] = None


@dataclass
class ScanResult:
    event_id: int
    student: Dict[str, Any]
    location: Dict[str, Any]
    direction: Direction
    source: ScanSource


def resolve_location(
    store: Store,
    location_id: Optional[int] = None,
    location_code: Optional[str] = None,
    school_id: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """Return the active location row matching the selector, or None.

    A direct ``location_id`` wins over a code. Without a school scope the code is
    matched across every school; codes are only unique per school, so that lookup
    picks the lowest id and logs when it was ambiguous.
    """
    loc = Location.__table__
    if location_id is not None:
        return store.fetch_one(select(loc).where(loc.c.id == location_id, loc.c.is_active.is_(True)))
    if not location_code:
        return None
    if school_id:
        return store.fetch_one(
            select(loc).where(
                loc.c.school_id == school_id,
                loc.c.code == location_code,
                loc.c.is_active.is_(True),
            )
        )
    rows = store.fetch_many(
        select(loc)
        .where(loc.c.code == location_code, loc.c.is_active.is_(True))
        .order_by(loc.c.id)
        .limit(2)
    )
    if len(rows) > 1:
        logger.warning("Location code %r matches several schools; using id=%s", location_code, rows[0]["id"])
    return rows[0] if rows else None


def last_scan(store: Store, student_id: int, location_id: int) -> Optional[Dict[str, Any]]:
    ev = ScanEvent.__table__
    return store.fetch_one(
        select(ev.c.id, ev.c.direction, ev.c.scanned_at)
        .where(ev.c.student_id == student_id, ev.c.location_id == location_id)
        .order_by(ev.c.scanned_at.desc(), ev.c.id.desc())
        .limit(1)
    )


def infer_direction(
    store: Store,
    student_id: int,
    location_id: int,
    explicit: Optional[Direction] = None,
) -> Direction:
    """Flip the last direction recorded for this (student, location) pair.

    An explicit direction is returned unchanged. No history, or a last EXIT, means ENTRY.
    """
    if explicit is not None:
        return Direction(explicit)
    last = last_scan(store, student_id, location_id)
    if last is None:
        return Direction.ENTRY
    return Direction(last["direction"]).toggled()


# Entries vanish once no request holds or waits on the lock
_scan_locks: "weakref.WeakValueDictionary[Tuple[int, int], threading.Lock]" = weakref.WeakValueDictionary()
_scan_locks_guard = threading.Lock()


@contextmanager
def scan_lock(student_id: int, location_id: int) -> Iterator[None]:
    # Process-local only; concurrent workers can still interleave read and append.
    if not get_settings().serialize_scans:
        yield
        return
    with _scan_locks_guard:
        key = (student_id, location_id)
        lock = _scan_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _scan_locks[key] = lock
    with lock:
        yield


def find_student(store: Store, source: ScanSource, credential: str) -> Optional[Dict[str, Any]]:
    st = Student.__table__
    column = st.c.qr_value if source is ScanSource.QR else st.c.card_uid
    return store.fetch_one(select(st).where(column == credential))


def ingest_scan(store: Store, request: ScanRequest, source: ScanSource) -> ScanResult:
    label = "qrValue" if source is ScanSource.QR else "cardUid"
    if not request.credential or (not request.location_code and request.location_id is None):
        raise ValidationError(f"{label} and location required")

    student = find_student(store, source, request.credential)
    if student is None:
        raise NotFoundError(
            "student",
            "Student not found for given QR value" if source is ScanSource.QR else "Student not found for given card UID",
        )

    location = resolve_location(
        store,
        location_id=request.location_id,
        location_code=request.location_code,
        school_id=request.school_id or student["school_id"],
    )
    if location is None:
        raise NotFoundError("location")

    with scan_lock(student["id"], location["id"]):
        direction = infer_direction(store, student["id"], location["id"], request.direction)
        result = store.execute(
            insert(ScanEvent.__table__).values(
                student_id=student["id"],
                location_id=location["id"],
                direction=direction.value,
                source=source.value,
                device_label=request.device_label or None,
            )
        )

    logger.info(
        "scan recorded event_id=%s student_id=%s location_id=%s direction=%s source=%s",
        result.id,
        student["id"],
        location["id"],
        direction.value,
        source.value,
    )
    return ScanResult(
        event_id=result.id,
        student={"id": student["id"], "name": student["full_name"], "school_id": student["school_id"]},
        location={"id": location["id"], "name": location["name"], "code": location["code"]},
        direction=direction,
        source=source,
    )


def _card_holder(store: Store, card_uid: str, student_id: int) -> Optional[Dict[str, Any]]:
    st = Student.__table__
    return store.fetch_one(
        select(st.c.id, st.c.full_name.label("name")).where(st.c.card_uid == card_uid, st.c.id != student_id)
    )


def _conflict(holder: Dict[str, Any]) -> ConflictError:
    return ConflictError("cardUid already assigned to another student", {"assigned_to": holder})


def assign_card(store: Store, student_id: int, card_uid: Optional[str]) -> Dict[str, Any]:
    if not card_uid:
        raise ValidationError("cardUid is required")

    st = Student.__table__
    if store.fetch_one(select(st.c.id).where(st.c.id == student_id)) is None:
        raise NotFoundError("student")

    holder = _card_holder(store, card_uid, student_id)
    if holder is not None:
        raise _conflict(holder)

    try:
        store.execute(update(st).where(st.c.id == student_id).values(card_uid=card_uid))
    except ConstraintViolation:
        # Lost a race to another assignment of the same card
        holder = _card_holder(store, card_uid, student_id)
        if holder is None:
            raise
        raise _conflict(holder)

    updated = store.fetch_one(select(st).where(st.c.id == student_id))
    logger.info("card assigned student_id=%s", student_id)
    return {"id": updated["id"], "name": updated["full_name"], "card_uid": updated["card_uid"]}
