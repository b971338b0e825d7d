# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Substitution availability endpoints and substitute lookups.
"""

from fastapi import APIRouter, Depends, Query

from substitutes.core.dependencies import get_store
from substitutes.models.domain import AvailabilityEntry
from substitutes.schemas import (
    AvailabilityCreate,
    AvailableSubstitutesResponse,
    BatchInsertResponse,
    batch_response,
)
from substitutes.services.store import SubstitutionStore
from substitutes.services.timekeeping import canonical_day

router = APIRouter(prefix="/api/v1", tags=["Availability"])


@router.get("/availability", response_model=list[AvailabilityEntry])
async def list_availability(store: SubstitutionStore = Depends(get_store)):
    return store.availability


@router.post("/availability", response_model=BatchInsertResponse)
async def add_availability(
    payload: list[AvailabilityCreate],
    store: SubstitutionStore = Depends(get_store),
):
    """Append availability windows; existing (teacher, day, start, end) are skipped."""
    return batch_response(await store.add_availability(payload))


@router.put("/availability", response_model=BatchInsertResponse)
async def replace_availability(
    payload: list[AvailabilityCreate],
    store: SubstitutionStore = Depends(get_store),
):
    """Replace the whole availability table."""
    return batch_response(await store.set_availability(payload))


@router.delete("/availability")
async def clear_availability(store: SubstitutionStore = Depends(get_store)):
    removed = await store.clear_availability()
    return {"status": "cleared", "removed": removed}


@router.get("/availability/substitutes", response_model=AvailableSubstitutesResponse)
async def available_at(
    day: str = Query(..., description="Weekday, e.g. 'Lunes' or 'mie'"),
    time: str = Query(..., description="HH:MM"),
    store: SubstitutionStore = Depends(get_store),
):
    """Teachers free to substitute at a given instant."""
    return AvailableSubstitutesResponse(
        day=day,
        canonical_day=canonical_day(day),
        teachers=store.get_available_substitutes(day, time),
    )


@router.get("/availability/substitutes/range", response_model=AvailableSubstitutesResponse)
async def available_during(
    day: str = Query(...),
    start: str = Query(..., description="HH:MM"),
    end: str = Query(..., description="HH:MM"),
    store: SubstitutionStore = Depends(get_store),
):
    """Teachers whose availability overlaps [start, end)."""
    return AvailableSubstitutesResponse(
        day=day,
        canonical_day=canonical_day(day),
        teachers=store.get_available_substitutes_for_range(day, start, end),
    )
