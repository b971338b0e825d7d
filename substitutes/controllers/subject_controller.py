# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Controller: Subject (class session) endpoints."""

from fastapi import APIRouter, Depends, Response

from substitutes.controllers.teacher_controller import INSERT_STATUS_CODES
from substitutes.core.dependencies import get_store
from substitutes.models.domain import Subject
from substitutes.schemas import (
    BatchInsertResponse,
    InsertResponse,
    SubjectCreate,
    batch_response,
    insert_response,
)
from substitutes.services.store import SubstitutionStore

router = APIRouter(prefix="/api/v1", tags=["Subjects"])


@router.get("/subjects", response_model=list[Subject])
async def list_subjects(store: SubstitutionStore = Depends(get_store)):
    return store.subjects


@router.post("/subjects", response_model=InsertResponse, status_code=201)
async def add_subject(
    payload: SubjectCreate,
    response: Response,
    store: SubstitutionStore = Depends(get_store),
):
    result = await store.add_subject(payload)
    response.status_code = INSERT_STATUS_CODES[result.status]
    return insert_response(result)


@router.post("/subjects/batch", response_model=BatchInsertResponse)
async def add_subjects(
    payload: list[SubjectCreate],
    store: SubstitutionStore = Depends(get_store),
):
    return batch_response(await store.add_subjects(payload))


@router.delete("/subjects")
async def clear_subjects(store: SubstitutionStore = Depends(get_store)):
    removed = await store.clear_subjects()
    return {"status": "cleared", "removed": removed}
