# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Request / Response schemas — API contract definitions.
Used ONLY at the controller (HTTP) boundary. camelCase on the wire,
snake_case accepted.
"""
import datetime as dt
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from substitutes.models.domain import ScheduleSlot


class Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Create / update payloads ──

class TeacherCreate(Schema):
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = None
    phone: Optional[str] = None
    department: Optional[str] = None


class SubjectCreate(Schema):
    teacher: str = ""
    day: str = ""
    time: str = Field("", description="HH:MM - HH:MM")
    subject: str = ""
    course_group: str = ""
    code: str = ""
    department: str = ""


class AvailabilityCreate(Schema):
    teacher: str = Field(..., min_length=1)
    day: str
    start_time: str
    end_time: str
    options: str = ""


class SubstitutionCreate(Schema):
    teacher_id: Optional[str] = None
    teacher_name: str = Field(..., min_length=1)
    date: dt.date
    reason: str = ""
    schedule: List[ScheduleSlot] = Field(default_factory=list)


class SubstitutionUpdate(Schema):
    """Partial update for PATCH /api/v1/substitutions/{id}."""
    teacher_name: Optional[str] = None
    date: Optional[dt.date] = None
    reason: Optional[str] = None
    status: Optional[str] = Field(None, min_length=1)
    substitute: Optional[str] = None
    schedule: Optional[List[ScheduleSlot]] = None


class MigrateRequest(Schema):
    confirm: bool = False


# ── Responses ──

class InsertResponse(Schema):
    status: str
    remote_synced: bool = False
    record: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class BatchInsertResponse(Schema):
    inserted: int
    duplicates: int
    failed: int
    batches: int
    failed_batches: List[int] = Field(default_factory=list)
    records: List[Dict[str, Any]] = Field(default_factory=list)


class AvailableSubstitutesResponse(Schema):
    day: str
    canonical_day: str
    teachers: List[str]


class StatsResponse(Schema):
    active: int
    covered: int
    total: int


class MigrationResponse(Schema):
    ok: bool
    cancelled: bool
    reason: Optional[str] = None
    collections: Dict[str, BatchInsertResponse] = Field(default_factory=dict)


def insert_response(result) -> InsertResponse:
    return InsertResponse(
        status=result.status.value,
        remote_synced=result.remote_synced,
        record=result.record.to_storage() if result.record is not None else None,
        error=result.error,
    )


def batch_response(report) -> BatchInsertResponse:
    return BatchInsertResponse(
        inserted=len(report.inserted),
        duplicates=report.duplicates,
        failed=report.failed,
        batches=report.batches,
        failed_batches=report.failed_batches,
        records=[r.to_storage() for r in report.inserted],
    )
