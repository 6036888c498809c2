from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import Direction, PresenceStatus, ScanSource


class APIResponse(BaseModel):
    ok: bool = True
    message: Optional[str] = None


# Scans
class ScanBase(BaseModel):
    # Scanners post camelCase; snake_case is accepted as well
    model_config = ConfigDict(populate_by_name=True)

    location_code: Optional[str] = Field(default=None, alias="locationCode")
    location_id: Optional[int] = Field(default=None, alias="locationId")
    school_id: Optional[str] = Field(default=None, alias="schoolId")
    # Free-form override; values other than IN/ENTRY/OUT/EXIT fall back to inference
    direction: Optional[str] = None
    device_label: Optional[str] = Field(default=None, alias="deviceLabel")


class QrScanIn(ScanBase):
    qr_value: Optional[str] = Field(default=None, alias="qrValue")


class NfcScanIn(ScanBase):
    card_uid: Optional[str] = Field(default=None, alias="cardUid")


class StudentSummary(BaseModel):
    id: int
    name: str
    school_id: str


class LocationSummary(BaseModel):
    id: int
    name: str
    code: str


class ScanOut(BaseModel):
    success: bool = True
    event_id: int
    student: StudentSummary
    location: LocationSummary
    direction: Direction
    source: ScanSource


# Students
class AssignCardIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    card_uid: Optional[str] = Field(default=None, alias="cardUid")


class CardHolder(BaseModel):
    id: int
    name: str
    card_uid: Optional[str] = None


class AssignCardOut(BaseModel):
    success: bool = True
    student: CardHolder


class CurrentLocationOut(BaseModel):
    student_id: int
    status: PresenceStatus
    current_location: Optional[LocationSummary] = None
    last_location: Optional[LocationSummary] = None
    last_scan_at: Optional[datetime] = None
    message: Optional[str] = None


# Locations
class OccupantOut(BaseModel):
    student_id: int
    full_name: str
    school_id: str
    direction: Direction
    scanned_at: datetime


class OccupantsOut(BaseModel):
    location_id: int
    count: int
    occupants: List[OccupantOut]


# History
class ScanEventOut(BaseModel):
    id: int
    student_id: int
    student_name: str
    location_id: int
    location_code: str
    direction: Direction
    source: ScanSource
    device_label: Optional[str] = None
    scanned_at: datetime


class ScansListResponse(BaseModel):
    items: List[ScanEventOut]
    total: int


class HealthOut(BaseModel):
    ok: bool = True
    time: datetime
