from __future__ import annotations

from fastapi import APIRouter, Depends

from ..deps import get_store
from ..occupancy import occupants
from ..schemas import OccupantsOut
from ..store import Store


router = APIRouter(prefix="/api/locations", tags=["locations"])


@router.get("/{location_id}/occupants", response_model=OccupantsOut)
def locations_occupants(location_id: int, store: Store = Depends(get_store)):
    rows = occupants(store, location_id)
    return {"location_id": location_id, "count": len(rows), "occupants": rows}
