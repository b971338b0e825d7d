# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain models — pure data structures, NO FastAPI dependency.

Records serialize with camelCase aliases; that is the format kept in local
storage and in exported backups. Snake_case names are accepted on input.
"""

import datetime as dt
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from substitutes.services.timekeeping import time_key, time_range_key

STATUS_ACTIVE = "active"
STATUS_COVERED = "covered"


def _as_id(value: Any) -> Any:
    # Backend ids may be integers or UUIDs; identity is compared as text.
    if value is None or isinstance(value, str):
        return value
    return str(value)


def _blank(value: Any) -> Any:
    return "" if value is None else value


RecordId = Annotated[str, BeforeValidator(_as_id)]
OptionalId = Annotated[Optional[str], BeforeValidator(_as_id)]
Text = Annotated[str, BeforeValidator(_blank)]


class Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_storage(self) -> dict[str, Any]:
        """JSON-ready camelCase dict, as persisted locally."""
        return self.model_dump(mode="json", by_alias=True)


class Teacher(Record):
    """A teacher who can be absent or act as a substitute."""
    id: RecordId = ""
    name: str = Field(..., min_length=1)
    email: Text = ""
    phone: Text = ""
    department: Text = ""

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    def key(self) -> str:
        return self.name.lower()


class Subject(Record):
    """A weekly class session; ``time`` holds ``"HH:MM - HH:MM"``."""
    id: RecordId = ""
    teacher: Text = ""
    day: Text = ""
    time: Text = ""
    subject: Text = ""
    course_group: Text = ""
    code: Text = ""
    department: Text = ""

    def key(self) -> tuple:
        return (
            self.subject.lower(),
            self.teacher.lower(),
            self.day,
            time_range_key(self.time),
            self.course_group,
        )


class AvailabilityEntry(Record):
    """A recurring weekly window in which a teacher can substitute."""
    id: RecordId = ""
    teacher: Text = ""
    day: Text = ""
    start_time: Text = ""
    end_time: Text = ""
    options: Text = ""

    def key(self) -> tuple:
        return (self.teacher.lower(), self.day, time_key(self.start_time), time_key(self.end_time))


class ScheduleSlot(Record):
    """One class period of an absence and who covers it."""
    time: Text = ""
    subject: Text = ""
    course_group: Text = ""
    substitute: Optional[str] = None
    substitute_id: OptionalId = None
    exceptional_substitute: Optional[str] = None
    exceptional_substitute_id: OptionalId = None
    covered: bool = False

    @model_validator(mode="after")
    def derive_covered(self) -> "ScheduleSlot":
        self.covered = bool(self.substitute)
        return self


class Substitution(Record):
    """An absence record, optionally broken down into schedule slots."""
    id: RecordId = ""
    teacher_id: OptionalId = None
    teacher_name: Text = ""
    date: dt.date
    reason: Text = ""
    status: str = STATUS_ACTIVE
    substitute: Optional[str] = None
    schedule: list[ScheduleSlot] = Field(default_factory=list)

    def matches(self, teacher_id: Any, date: dt.date | str) -> bool:
        return str(self.teacher_id) == str(teacher_id) and self.date.isoformat() == str(date)

    def has_slot(self, time_range: str) -> bool:
        wanted = time_range_key(time_range)
        return any(time_range_key(slot.time) == wanted for slot in self.schedule)
