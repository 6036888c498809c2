from __future__ import annotations

from fastapi import APIRouter, Depends

from ..attendance import assign_card
from ..deps import get_store
from ..occupancy import current_location
from ..schemas import AssignCardIn, AssignCardOut, CurrentLocationOut
from ..store import Store


router = APIRouter(prefix="/api/students", tags=["students"])


@router.post("/{student_id}/assign-card", response_model=AssignCardOut)
def students_assign_card(student_id: int, payload: AssignCardIn, store: Store = Depends(get_store)):
    return {"success": True, "student": assign_card(store, student_id, payload.card_uid)}


@router.get("/{student_id}/current-location", response_model=CurrentLocationOut, response_model_exclude_none=True)
def students_current_location(student_id: int, store: Store = Depends(get_store)):
    return current_location(store, student_id)
