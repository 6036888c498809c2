from __future__ import annotations

import csv
import io
from typing import Iterable, List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy import select

from ..deps import get_store
from ..models import Location, ScanEvent, Student
from ..store import Store


router = APIRouter(prefix="/api", tags=["exports"])

SCAN_FIELDS = [
    "id",
    "scanned_at",
    "student_id",
    "student_name",
    "school_id",
    "location_id",
    "location_code",
    "location_name",
    "direction",
    "source",
    "device_label",
]


def _stream_csv(rows: Iterable[dict], filename: str, header_fields: Optional[List[str]] = None) -> StreamingResponse:
    buffer = io.StringIO()
    row_iter = iter(rows)
    first_row = next(row_iter, None)
    if header_fields is not None:
        fieldnames = header_fields
    elif first_row is not None:
        fieldnames = list(first_row.keys())
    else:
        fieldnames = []
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    if first_row is not None:
        writer.writerow(first_row)
    for row in row_iter:
        writer.writerow(row)
    buffer.seek(0)
    headers = {"Content-Disposition": f"attachment; filename={filename}"}
    return StreamingResponse(iter([buffer.getvalue()]), media_type="text/csv", headers=headers)


@router.get("/export.scans.csv")
def export_scans(store: Store = Depends(get_store)):
    ev = ScanEvent.__table__
    st = Student.__table__
    loc = Location.__table__
    items = store.fetch_many(
        select(
            ev.c.id,
            ev.c.scanned_at,
            ev.c.student_id,
            st.c.full_name.label("student_name"),
            st.c.school_id,
            ev.c.location_id,
            loc.c.code.label("location_code"),
            loc.c.name.label("location_name"),
            ev.c.direction,
            ev.c.source,
            ev.c.device_label,
        )
        .join_from(ev, st, st.c.id == ev.c.student_id)
        .join(loc, loc.c.id == ev.c.location_id)
        .order_by(ev.c.scanned_at, ev.c.id)
    )
    rows = (
        {
            **r,
            "scanned_at": r["scanned_at"].isoformat() if r["scanned_at"] else "",
            "device_label": r["device_label"] or "",
        }
        for r in items
    )
    return _stream_csv(rows, "scans.csv", header_fields=SCAN_FIELDS)
