from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

from ..schemas import HealthOut


router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=HealthOut)
def health():
    return {"ok": True, "time": datetime.now(timezone.utc)}
