# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Field mapping between in-memory records (camelCase, combined time range)
and remote rows (snake_case, separate ``time_start`` / ``time_end``).
"""
from typing import Any, Callable, Dict, List

from substitutes.repositories.local_storage import (
    AVAILABILITY_KEY,
    SUBJECTS_KEY,
    SUBSTITUTIONS_KEY,
    TEACHERS_KEY,
)
from substitutes.services.timekeeping import join_time_range, split_time_range

DEFAULT_TIME = "00:00:00"
SCHEDULES_TABLE = "substitution_schedules"

TABLES: Dict[str, str] = {
    TEACHERS_KEY: "teachers",
    SUBJECTS_KEY: "subjects",
    SUBSTITUTIONS_KEY: "substitutions",
    AVAILABILITY_KEY: "substitution_availability",
}

SELECTS: Dict[str, str] = {
    TEACHERS_KEY: "*",
    SUBJECTS_KEY: "*",
    SUBSTITUTIONS_KEY: f"*,{SCHEDULES_TABLE}(*)",
    AVAILABILITY_KEY: "*",
}

ORDERING: Dict[str, str] = {
    TEACHERS_KEY: "name",
    SUBJECTS_KEY: "day,time_start",
    SUBSTITUTIONS_KEY: "date.desc",
    AVAILABILITY_KEY: "day,time_start",
}

_SUBSTITUTION_COLUMNS = {
    "teacherId": "teacher_id",
    "teacherName": "teacher_name",
    "date": "date",
    "reason": "reason",
    "status": "status",
}


def _range(value: str) -> tuple[str, str]:
    start, end = split_time_range(value)
    return start or DEFAULT_TIME, end or DEFAULT_TIME


# ── Teachers ──

def teacher_to_row(rec: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "name": rec.get("name", ""),
        "email": rec.get("email", ""),
        "phone": rec.get("phone", ""),
        "department": rec.get("department", ""),
    }


def teacher_from_row(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "name": row.get("name") or "",
        "email": row.get("email") or "",
        "phone": row.get("phone") or "",
        "department": row.get("department") or "",
    }


# ── Subjects ──

def subject_to_row(rec: Dict[str, Any]) -> Dict[str, Any]:
    start, end = _range(rec.get("time", ""))
    return {
        "teacher_id": rec.get("teacherId"),
        "teacher_name": rec.get("teacher", ""),
        "day": rec.get("day", ""),
        "time_start": start,
        "time_end": end,
        "subject_code": rec.get("subject", ""),
        "course_group": rec.get("courseGroup", ""),
        "classroom": rec.get("code", ""),
        "department": rec.get("department", ""),
    }


def subject_from_row(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "teacher": row.get("teacher_name") or "",
        "day": row.get("day") or "",
        "time": join_time_range(row.get("time_start") or "", row.get("time_end") or ""),
        "subject": row.get("subject_code") or "",
        "courseGroup": row.get("course_group") or "",
        "code": row.get("classroom") or "",
        "department": row.get("department") or "",
    }


# ── Availability ──

def availability_to_row(rec: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "teacher_id": rec.get("teacherId"),
        "teacher_name": rec.get("teacher", ""),
        "day": rec.get("day", ""),
        "time_start": rec.get("startTime") or DEFAULT_TIME,
        "time_end": rec.get("endTime") or DEFAULT_TIME,
        "options": rec.get("options", ""),
    }


def availability_from_row(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "teacher": row.get("teacher_name") or "",
        "day": row.get("day") or "",
        "startTime": row.get("time_start") or "",
        "endTime": row.get("time_end") or "",
        "options": row.get("options") or "",
    }


# ── Substitutions ──

def substitution_to_row(rec: Dict[str, Any]) -> Dict[str, Any]:
    return {column: rec.get(field) for field, column in _SUBSTITUTION_COLUMNS.items()}


def substitution_changes_to_row(changes: Dict[str, Any]) -> Dict[str, Any]:
    return {
        column: changes[field]
        for field, column in _SUBSTITUTION_COLUMNS.items()
        if field in changes
    }


def slot_to_row(slot: Dict[str, Any], substitution_id: str) -> Dict[str, Any]:
    start, end = _range(slot.get("time", ""))
    return {
        "substitution_id": substitution_id,
        "time_start": start,
        "time_end": end,
        "subject_code": slot.get("subject", ""),
        "course_group": slot.get("courseGroup", ""),
        "substitute_teacher_id": slot.get("substituteId"),
        "substitute_name": slot.get("substitute") or "",
        "exceptional_substitute_id": slot.get("exceptionalSubstituteId"),
        "exceptional_substitute_name": slot.get("exceptionalSubstitute") or "",
        "is_covered": bool(slot.get("substitute")),
    }


def slot_from_row(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "time": join_time_range(row.get("time_start") or "", row.get("time_end") or ""),
        "subject": row.get("subject_code") or "",
        "courseGroup": row.get("course_group") or "",
        "substitute": row.get("substitute_name") or None,
        "substituteId": row.get("substitute_teacher_id"),
        "exceptionalSubstitute": row.get("exceptional_substitute_name") or None,
        "exceptionalSubstituteId": row.get("exceptional_substitute_id"),
    }


def substitution_from_row(row: Dict[str, Any]) -> Dict[str, Any]:
    schedules: List[Dict[str, Any]] = row.get(SCHEDULES_TABLE) or []
    return {
        "id": row["id"],
        "teacherId": row.get("teacher_id"),
        "teacherName": row.get("teacher_name") or "",
        "date": row["date"],
        "reason": row.get("reason") or "",
        "status": row.get("status") or "active",
        "substitute": (schedules[0].get("substitute_name") or None) if schedules else None,
        "schedule": [slot_from_row(s) for s in schedules],
    }


TO_ROW: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    TEACHERS_KEY: teacher_to_row,
    SUBJECTS_KEY: subject_to_row,
    SUBSTITUTIONS_KEY: substitution_to_row,
    AVAILABILITY_KEY: availability_to_row,
}

FROM_ROW: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    TEACHERS_KEY: teacher_from_row,
    SUBJECTS_KEY: subject_from_row,
    SUBSTITUTIONS_KEY: substitution_from_row,
    AVAILABILITY_KEY: availability_from_row,
}
