# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Substitution (absence) endpoints.
Thin HTTP layer — maps store errors to status codes.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from substitutes.controllers.teacher_controller import INSERT_STATUS_CODES
from substitutes.core.dependencies import get_store
from substitutes.models.domain import Substitution
from substitutes.schemas import (
    InsertResponse,
    StatsResponse,
    SubstitutionCreate,
    SubstitutionUpdate,
    insert_response,
)
from substitutes.services.store import SubstitutionStore

router = APIRouter(prefix="/api/v1", tags=["Substitutions"])


@router.get("/substitutions", response_model=list[Substitution])
async def list_substitutions(
    teacher_id: Optional[str] = Query(None),
    day: Optional[date] = Query(None, alias="date"),
    store: SubstitutionStore = Depends(get_store),
):
    """All substitutions, newest first; filtered when both teacher_id and date are given."""
    if teacher_id is not None and day is not None:
        return store.get_substitutions_by_teacher_and_date(teacher_id, day)
    if teacher_id is not None:
        return [s for s in store.substitutions if s.teacher_id == teacher_id]
    if day is not None:
        return [s for s in store.substitutions if s.date == day]
    return store.substitutions


@router.get("/substitutions/stats", response_model=StatsResponse)
async def substitution_stats(
    day: Optional[date] = Query(None, alias="date"),
    store: SubstitutionStore = Depends(get_store),
):
    """Active / covered counts for today (or the given date)."""
    return store.get_stats(day)


@router.get("/substitutions/lookup", response_model=Substitution)
async def lookup_substitution(
    teacher_id: str = Query(...),
    day: date = Query(..., alias="date"),
    start_time: str = Query(..., description="HH:MM"),
    end_time: str = Query(..., description="HH:MM"),
    store: SubstitutionStore = Depends(get_store),
):
    """Find the substitution covering one class period of a teacher."""
    found = store.find_substitution(teacher_id, day, start_time, end_time)
    if found is None:
        raise HTTPException(status_code=404, detail="No substitution covers that period")
    return found


@router.post("/substitutions", response_model=InsertResponse, status_code=201)
async def add_substitution(
    payload: SubstitutionCreate,
    response: Response,
    store: SubstitutionStore = Depends(get_store),
):
    result = await store.add_substitution(payload)
    response.status_code = INSERT_STATUS_CODES[result.status]
    return insert_response(result)


@router.patch("/substitutions/{substitution_id}", response_model=Substitution)
async def update_substitution(
    substitution_id: str,
    payload: SubstitutionUpdate,
    store: SubstitutionStore = Depends(get_store),
):
    changes = payload.model_dump(by_alias=True, exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=422, detail="No fields to update")
    try:
        return await store.update_substitution(substitution_id, changes)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=exc.args[0])
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))


@router.delete("/substitutions/{substitution_id}")
async def remove_substitution(
    substitution_id: str,
    store: SubstitutionStore = Depends(get_store),
):
    if not await store.remove_substitution(substitution_id):
        raise HTTPException(
            status_code=404, detail=f"No substitution found with id '{substitution_id}'"
        )
    return {"status": "deleted", "id": substitution_id}


@router.delete("/substitutions")
async def remove_substitutions_for_teacher_and_date(
    teacher_id: str = Query(...),
    day: date = Query(..., alias="date"),
    store: SubstitutionStore = Depends(get_store),
):
    removed = await store.remove_substitutions_for_teacher_and_date(teacher_id, day)
    return {"status": "deleted", "removed": removed}
