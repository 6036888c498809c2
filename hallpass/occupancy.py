from __future__ import annotations

"""
Read-only views over the scan log: where a student is now, who is inside a
location now, and plain scan history.

Nothing is cached; each call scans the relevant slice of ``scan_events``.
"""

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select

from .models import Direction, Location, PresenceStatus, ScanEvent, Student
from .store import Store


def current_location(store: Store, student_id: int) -> Dict[str, Any]:
    ev = ScanEvent.__table__
    loc = Location.__table__
    last = store.fetch_one(
        select(
            ev.c.location_id,
            ev.c.direction,
            ev.c.scanned_at,
            loc.c.name.label("location_name"),
            loc.c.code.label("location_code"),
        )
        .join_from(ev, loc, loc.c.id == ev.c.location_id)
        .where(ev.c.student_id == student_id)
        .order_by(ev.c.scanned_at.desc(), ev.c.id.desc())
        .limit(1)
    )
    if last is None:
        return {
            "student_id": student_id,
            "status": PresenceStatus.UNKNOWN,
            "message": "No scans found for this student yet.",
        }

    where = {"id": last["location_id"], "name": last["location_name"], "code": last["location_code"]}
    if last["direction"] == Direction.EXIT.value:
        return {
            "student_id": student_id,
            "status": PresenceStatus.OUT_OF_LOCATION,
            "last_location": where,
            "last_scan_at": last["scanned_at"],
        }
    return {
        "student_id": student_id,
        "status": PresenceStatus.IN_LOCATION,
        "current_location": where,
        "last_scan_at": last["scanned_at"],
    }


def occupants(store: Store, location_id: int) -> List[Dict[str, Any]]:
    """Students whose latest scan at ``location_id`` is an entry, most recent first."""
    ev = ScanEvent.__table__
    st = Student.__table__
    latest = (
        select(
            ev.c.student_id,
            ev.c.direction,
            ev.c.scanned_at,
            func.row_number()
            .over(partition_by=ev.c.student_id, order_by=[ev.c.scanned_at.desc(), ev.c.id.desc()])
            .label("recency"),
        )
        .where(ev.c.location_id == location_id)
        .subquery("latest")
    )
    return store.fetch_many(
        select(
            st.c.id.label("student_id"),
            st.c.full_name,
            st.c.school_id,
            latest.c.direction,
            latest.c.scanned_at,
        )
        .join_from(latest, st, st.c.id == latest.c.student_id)
        .where(latest.c.recency == 1, latest.c.direction == Direction.ENTRY.value)
        .order_by(latest.c.scanned_at.desc())
    )


def list_scans(
    store: Store,
    student_id: Optional[int] = None,
    location_id: Optional[int] = None,
    page: int = 1,
    page_size: int = 50,
) -> Tuple[List[Dict[str, Any]], int]:
    ev = ScanEvent.__table__
    st = Student.__table__
    loc = Location.__table__

    filters = []
    if student_id is not None:
        filters.append(ev.c.student_id == student_id)
    if location_id is not None:
        filters.append(ev.c.location_id == location_id)

    total = store.fetch_one(select(func.count().label("n")).select_from(ev).where(*filters))
    items = store.fetch_many(
        select(
            ev.c.id,
            ev.c.student_id,
            st.c.full_name.label("student_name"),
            ev.c.location_id,
            loc.c.code.label("location_code"),
            ev.c.direction,
            ev.c.source,
            ev.c.device_label,
            ev.c.scanned_at,
        )
        .join_from(ev, st, st.c.id == ev.c.student_id)
        .join(loc, loc.c.id == ev.c.location_id)
        .where(*filters)
        .order_by(ev.c.scanned_at.desc(), ev.c.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return items, int(total["n"]) if total else 0
