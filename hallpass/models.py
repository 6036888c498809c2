from __future__ import annotations

"""
Persisted entities: students, locations and the append-only scan event log.

Current location and occupancy are never stored; they are derived from
``scan_events`` on every query.
"""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


class Direction(str, enum.Enum):
    ENTRY = "IN"
    EXIT = "OUT"

    def toggled(self) -> "Direction":
        return Direction.EXIT if self is Direction.ENTRY else Direction.ENTRY

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Direction"]:
        """Map a scanner-supplied override to a direction; anything unrecognised means infer."""
        if not value:
            return None
        return _DIRECTION_WORDS.get(value.strip().upper())


_DIRECTION_WORDS = {
    "IN": Direction.ENTRY,
    "ENTRY": Direction.ENTRY,
    "OUT": Direction.EXIT,
    "EXIT": Direction.EXIT,
}


class ScanSource(str, enum.Enum):
    QR = "QR"
    NFC = "NFC"


class PresenceStatus(str, enum.Enum):
    UNKNOWN = "UNKNOWN"
    IN_LOCATION = "IN_LOCATION"
    OUT_OF_LOCATION = "OUT_OF_LOCATION"


class Student(Base):
    __tablename__ = "students"
    """Enrolled student; QR value and card UID are the two scan credentials."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    school_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    qr_value: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, unique=True)
    card_uid: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, unique=True)


class Location(Base):
    __tablename__ = "locations"
    """Scannable place (room, hallway, office). Codes are unique per school only."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    school_id: Mapped[str] = mapped_column(String(64), nullable=False)
    code: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        UniqueConstraint("school_id", "code", name="uq_location_school_code"),
        Index("ix_locations_code_active", "code", "is_active"),
    )


class ScanEvent(Base):
    __tablename__ = "scan_events"
    """Append-only log of entries and exits. Rows are never updated or deleted."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(Integer, ForeignKey("students.id"), nullable=False)
    location_id: Mapped[int] = mapped_column(Integer, ForeignKey("locations.id"), nullable=False)
    direction: Mapped[str] = mapped_column(String(8), nullable=False)
    source: Mapped[str] = mapped_column(String(8), nullable=False)
    device_label: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    scanned_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("direction IN ('IN', 'OUT')", name="ck_scan_direction"),
        CheckConstraint("source IN ('QR', 'NFC')", name="ck_scan_source"),
        Index("ix_scan_events_student_location_ts", "student_id", "location_id", "scanned_at"),
        Index("ix_scan_events_location_ts", "location_id", "scanned_at"),
        Index("ix_scan_events_student_ts", "student_id", "scanned_at"),
    )
