# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Backup export / import and local-to-remote migration.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from substitutes.core.dependencies import get_store
from substitutes.schemas import MigrateRequest, MigrationResponse, batch_response
from substitutes.services.store import SubstitutionStore

router = APIRouter(prefix="/api/v1/backup", tags=["Backup"])


@router.get("/export")
async def export_backup(store: SubstitutionStore = Depends(get_store)):
    """Download every collection as one JSON document."""
    filename = store.backup_filename()
    return JSONResponse(
        content=store.export_backup(),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/import")
async def import_backup(
    payload: Dict[str, Any],
    store: SubstitutionStore = Depends(get_store),
):
    """Replace local data with a previously exported backup."""
    try:
        counts = store.restore_backup(payload)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=f"Invalid backup: {exc}")
    return {"status": "restored", "collections": counts}


@router.post("/migrate", response_model=MigrationResponse)
async def migrate_to_remote(
    payload: MigrateRequest,
    store: SubstitutionStore = Depends(get_store),
):
    """Push locally stored records to the remote backend.

    Requires ``confirm: true``; anything else is reported as cancelled.
    """
    report = await store.migrate_to_remote(confirm=lambda _total: payload.confirm)
    return MigrationResponse(
        ok=report.ok,
        cancelled=report.cancelled,
        reason=report.reason,
        collections={key: batch_response(r) for key, r in report.reports.items()},
    )
