from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..attendance import ScanRequest, ingest_scan
from ..config import get_settings
from ..deps import get_store
from ..models import Direction, ScanSource
from ..occupancy import list_scans
from ..schemas import NfcScanIn, QrScanIn, ScanOut, ScansListResponse
from ..store import Store


router = APIRouter(prefix="/api", tags=["scans"])


def _scan_out(result) -> ScanOut:
    return ScanOut(
        event_id=result.event_id,
        student=result.student,
        location=result.location,
        direction=result.direction,
        source=result.source,
    )


@router.post("/scan/qr", response_model=ScanOut)
def scan_qr(payload: QrScanIn, store: Store = Depends(get_store)):
    request = ScanRequest(
        credential=payload.qr_value,
        location_id=payload.location_id,
        location_code=payload.location_code,
        school_id=payload.school_id,
        direction=Direction.parse(payload.direction),
        device_label=payload.device_label,
    )
    return _scan_out(ingest_scan(store, request, ScanSource.QR))


@router.post("/scan/nfc", response_model=ScanOut)
def scan_nfc(payload: NfcScanIn, store: Store = Depends(get_store)):
    request = ScanRequest(
        credential=payload.card_uid,
        location_id=payload.location_id,
        location_code=payload.location_code,
        school_id=payload.school_id,
        direction=Direction.parse(payload.direction),
        device_label=payload.device_label,
    )
    return _scan_out(ingest_scan(store, request, ScanSource.NFC))


@router.get("/scans.list", response_model=ScansListResponse)
def scans_list(
    store: Store = Depends(get_store),
    page: int = Query(default=1, ge=1),
    page_size: Optional[int] = Query(default=None, ge=1, le=500),
    student_id: Optional[int] = None,
    location_id: Optional[int] = None,
):
    items, total = list_scans(
        store,
        student_id=student_id,
        location_id=location_id,
        page=page,
        page_size=page_size or get_settings().default_page_size,
    )
    return {"items": items, "total": total}
