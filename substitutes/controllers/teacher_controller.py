# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Teacher endpoints.
Thin HTTP layer — delegates ALL logic to SubstitutionStore.
"""

from fastapi import APIRouter, Depends, HTTPException, Response

from substitutes.core.dependencies import get_store
from substitutes.models.domain import Teacher
from substitutes.schemas import (
    BatchInsertResponse,
    InsertResponse,
    TeacherCreate,
    batch_response,
    insert_response,
)
from substitutes.services.store import InsertStatus, SubstitutionStore

router = APIRouter(prefix="/api/v1", tags=["Teachers"])

INSERT_STATUS_CODES = {
    InsertStatus.INSERTED: 201,
    InsertStatus.DUPLICATE: 200,
    InsertStatus.FAILED: 422,
}


@router.get("/teachers", response_model=list[Teacher])
async def list_teachers(store: SubstitutionStore = Depends(get_store)):
    return store.teachers


@router.post("/teachers", response_model=InsertResponse, status_code=201)
async def add_teacher(
    payload: TeacherCreate,
    response: Response,
    store: SubstitutionStore = Depends(get_store),
):
    """Add a teacher; a case-insensitive name match is skipped."""
    result = await store.add_teacher(payload)
    response.status_code = INSERT_STATUS_CODES[result.status]
    return insert_response(result)


@router.post("/teachers/batch", response_model=BatchInsertResponse)
async def add_teachers(
    payload: list[TeacherCreate],
    store: SubstitutionStore = Depends(get_store),
):
    return batch_response(await store.add_teachers(payload))


@router.delete("/teachers/{teacher_id}")
async def remove_teacher(
    teacher_id: str,
    store: SubstitutionStore = Depends(get_store),
):
    if not await store.remove_teacher(teacher_id):
        raise HTTPException(status_code=404, detail=f"No teacher found with id '{teacher_id}'")
    return {"status": "deleted", "id": teacher_id}
