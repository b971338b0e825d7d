# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Record store — the four collections and their persistence.

Every mutation is applied in memory first, then propagated best-effort to
the active backend, then written through to local storage. A backend
failure is logged and counted; it never rolls back the local change.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional

import httpx
from pydantic import BaseModel, ValidationError

from substitutes.core.logging import get_logger
from substitutes.metrics import (
    COLLECTION_SIZE,
    DUPLICATES_SKIPPED,
    RECORDS_INSERTED,
    REMOTE_BACKEND_ACTIVE,
    REMOTE_BATCHES,
    REMOTE_SYNC_FAILURES,
)
from substitutes.models.domain import (
    STATUS_ACTIVE,
    STATUS_COVERED,
    AvailabilityEntry,
    Record,
    Subject,
    Substitution,
    Teacher,
)
from substitutes.repositories.base import PartialInsertError, PersistenceAdapter, RemoteSyncError
from substitutes.repositories.local_adapter import LocalAdapter
from substitutes.repositories.local_storage import (
    AVAILABILITY_KEY,
    COLLECTION_KEYS,
    SUBJECTS_KEY,
    SUBSTITUTIONS_KEY,
    TEACHERS_KEY,
    LocalStorage,
)
from substitutes.services.availability import AvailabilityIndex
from substitutes.services.pacing import BatchPacer, NoDelayPacer
from substitutes.services.timekeeping import join_time_range

logger = get_logger(__name__)

REMOTE_ERRORS = (httpx.HTTPError, RemoteSyncError)
LOAD_ERRORS = REMOTE_ERRORS + (ValidationError, KeyError)

MODELS: Dict[str, type] = {
    TEACHERS_KEY: Teacher,
    SUBJECTS_KEY: Subject,
    SUBSTITUTIONS_KEY: Substitution,
    AVAILABILITY_KEY: AvailabilityEntry,
}

DEFAULT_TEACHERS: List[Dict[str, str]] = [
    {"id": "1", "name": "Maria Garcia", "department": "Matematicas"},
    {"id": "2", "name": "Juan Lopez", "department": "Lengua"},
    {"id": "3", "name": "Ana Martinez", "department": "Ingles"},
    {"id": "4", "name": "Carlos Ruiz", "department": "Historia"},
]


class InsertStatus(str, Enum):
    INSERTED = "inserted"
    DUPLICATE = "duplicate"
    FAILED = "failed"


@dataclass
class InsertResult:
    status: InsertStatus
    record: Optional[Record] = None
    remote_synced: bool = False
    error: Optional[str] = None

    @property
    def inserted(self) -> bool:
        return self.status is InsertStatus.INSERTED


@dataclass
class BatchReport:
    collection: str
    inserted: List[Record] = field(default_factory=list)
    duplicates: int = 0
    failed: int = 0
    batches: int = 0
    failed_batches: List[int] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


@dataclass
class MigrationReport:
    reports: Dict[str, BatchReport] = field(default_factory=dict)
    cancelled: bool = False
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not self.cancelled and not any(r.failed_batches for r in self.reports.values())


def _payload(data: Any) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(by_alias=True, exclude_none=True)
    return dict(data)


def _aliased(model: type, changes: Mapping[str, Any]) -> Dict[str, Any]:
    """Rewrite snake_case field names to their camelCase aliases."""
    out: Dict[str, Any] = {}
    for key, value in changes.items():
        info = model.model_fields.get(key)
        out[info.alias if info is not None and info.alias else key] = value
    return out


class SubstitutionStore:
    """Teachers, subjects, substitutions and availability, kept in sync."""

    def __init__(
        self,
        local_storage: LocalStorage,
        remote: Optional[PersistenceAdapter] = None,
        pacer: Optional[BatchPacer] = None,
        batch_size: int = 50,
        seed_defaults: bool = True,
    ) -> None:
        self._local = local_storage
        self._remote = remote
        self._local_adapter = LocalAdapter(local_storage)
        self._backend: PersistenceAdapter = self._local_adapter
        self._pacer = pacer or NoDelayPacer()
        self._batch_size = max(1, batch_size)
        self._seed_defaults = seed_defaults

        self.teachers: List[Teacher] = []
        self.subjects: List[Subject] = []
        self.substitutions: List[Substitution] = []
        self.availability: List[AvailabilityEntry] = []
        self.is_loading = False
        self.data_loaded = False

    @property
    def use_remote(self) -> bool:
        return self._backend.is_remote

    @property
    def backend_name(self) -> str:
        return self._backend.name

    # ── Lifecycle ──

    async def init(self) -> None:
        """Pick the backend once and load every collection from it."""
        logger.info("Initializing store")
        if self._remote is not None and await self._remote.probe():
            self._backend = self._remote
            logger.info("Using remote backend: %s", self._remote.name)
            try:
                await self.load_all_from_backend()
                logger.info("Collections loaded from remote backend")
            except LOAD_ERRORS as exc:
                logger.error("Remote load failed, falling back to local storage: %s", exc)
                self._backend = self._local_adapter
                self.load_all_from_local()
        else:
            logger.info("Using local storage (remote backend not configured or unreachable)")
            self.load_all_from_local()
        self.data_loaded = True
        REMOTE_BACKEND_ACTIVE.set(1 if self.use_remote else 0)

    async def close(self) -> None:
        if self._remote is not None:
            await self._remote.aclose()

    async def load_all_from_backend(self) -> None:
        self.is_loading = True
        try:
            loaded = await asyncio.gather(*(self._backend.load(key) for key in COLLECTION_KEYS))
        finally:
            self.is_loading = False
        collections = {
            key: [MODELS[key].model_validate(item) for item in items]
            for key, items in zip(COLLECTION_KEYS, loaded)
        }
        self._replace_all(collections)

    def load_all_from_local(self) -> None:
        collections: Dict[str, List[Record]] = {}
        for key in COLLECTION_KEYS:
            items = self._local.get_item(key) or []
            collections[key] = [MODELS[key].model_validate(item) for item in items]
        self._replace_all(collections)

        if self._seed_defaults and not self._local.has_item(TEACHERS_KEY):
            self.teachers[:] = [Teacher.model_validate(t) for t in DEFAULT_TEACHERS]
            self._persist(TEACHERS_KEY)
            logger.info("Seeded %d default teachers", len(self.teachers))
        if self._seed_defaults and not self._local.has_item(SUBSTITUTIONS_KEY):
            self.substitutions[:] = [Substitution(
                id="1",
                teacher_id="1",
                teacher_name="Maria Garcia",
                date=date.today(),
                reason="Enfermedad",
                status=STATUS_ACTIVE,
            )]
            self._persist(SUBSTITUTIONS_KEY)
            logger.info("Seeded sample substitution")
        self._refresh_gauges()

    # ── Persistence helpers ──

    def _collection(self, key: str) -> List[Record]:
        return {
            TEACHERS_KEY: self.teachers,
            SUBJECTS_KEY: self.subjects,
            SUBSTITUTIONS_KEY: self.substitutions,
            AVAILABILITY_KEY: self.availability,
        }[key]

    def _replace_all(self, collections: Mapping[str, List[Record]]) -> None:
        for key, records in collections.items():
            self._collection(key)[:] = records
        self._refresh_gauges()

    def _refresh_gauges(self) -> None:
        for key in COLLECTION_KEYS:
            COLLECTION_SIZE.labels(collection=key).set(len(self._collection(key)))

    def _persist(self, key: str) -> None:
        """Write the whole collection through to local storage."""
        records = self._collection(key)
        self._local.set_item(key, [r.to_storage() for r in records])
        COLLECTION_SIZE.labels(collection=key).set(len(records))

    @staticmethod
    def _new_id() -> str:
        return str(uuid.uuid4())

    def _outbound(self, key: str, record: Record) -> Dict[str, Any]:
        data = record.to_storage()
        if key in (SUBJECTS_KEY, AVAILABILITY_KEY):
            teacher = self.find_teacher(record.teacher)
            data["teacherId"] = teacher.id if teacher else None
        return data

    async def _apply(self, key: str, operation: str, call: Callable[[], Awaitable[Any]]) -> bool:
        try:
            await call()
        except REMOTE_ERRORS as exc:
            REMOTE_SYNC_FAILURES.labels(collection=key, operation=operation).inc()
            logger.error(
                "Backend %s failed, change kept locally: %s", operation, exc,
                extra={"collection": key},
            )
            return False
        return True

    async def _push(self, key: str, records: List[Record]) -> bool:
        """Insert ``records`` in the backend and adopt the ids it assigned."""
        payload = [self._outbound(key, r) for r in records]
        assigned: Dict[str, str] = {}

        async def _insert() -> None:
            try:
                assigned.update(await self._backend.insert(key, payload))
            except PartialInsertError as exc:
                assigned.update(exc.assigned)
                raise

        synced = await self._apply(key, "insert", _insert)
        for record in records:
            new_id = assigned.get(record.id)
            if new_id:
                record.id = new_id
        return synced

    async def _push_in_batches(self, key: str, records: List[Record], report: BatchReport) -> None:
        size = self._batch_size
        batches = [records[i:i + size] for i in range(0, len(records), size)]
        report.batches = len(batches)
        if self.use_remote:
            logger.info("Saving %d records in %d batches", len(records), len(batches),
                        extra={"collection": key})
        for number, batch in enumerate(batches, start=1):
            if await self._push(key, batch):
                REMOTE_BATCHES.labels(collection=key, outcome="ok").inc()
                if self.use_remote:
                    logger.info("Batch %d/%d: %d records saved", number, len(batches), len(batch),
                                extra={"collection": key})
            else:
                REMOTE_BATCHES.labels(collection=key, outcome="failed").inc()
                report.failed_batches.append(number)
            if self.use_remote and number < len(batches):
                await self._pacer.pause()

    def _candidates(self, key: str, items: Iterable[Any], report: BatchReport,
                    prepare: Callable[[Dict[str, Any]], Dict[str, Any]]) -> List[Record]:
        """Validate and de-duplicate ``items`` against the collection and each other."""
        model = MODELS[key]
        seen = {r.key() for r in self._collection(key)}
        fresh: List[Record] = []
        for item in items:
            try:
                candidate = model.model_validate({**prepare(_payload(item)), "id": self._new_id()})
            except ValidationError as exc:
                report.failed += 1
                report.errors.append(exc.errors()[0]["msg"])
                logger.warning("Rejected invalid record: %s", report.errors[-1],
                               extra={"collection": key})
                continue
            if candidate.key() in seen:
                report.duplicates += 1
                DUPLICATES_SKIPPED.labels(collection=key).inc()
                continue
            seen.add(candidate.key())
            fresh.append(candidate)
        return fresh

    async def _add_one(self, key: str, data: Any,
                       prepare: Callable[[Dict[str, Any]], Dict[str, Any]]) -> InsertResult:
        report = BatchReport(key)
        fresh = self._candidates(key, [data], report, prepare)
        if report.duplicates:
            return InsertResult(InsertStatus.DUPLICATE)
        if not fresh:
            return InsertResult(InsertStatus.FAILED, error=report.errors[0])
        record = fresh[0]
        self._collection(key).append(record)
        synced = await self._push(key, [record])
        self._persist(key)
        RECORDS_INSERTED.labels(collection=key).inc()
        return InsertResult(InsertStatus.INSERTED, record, remote_synced=synced)

    async def _add_many(self, key: str, items: Iterable[Any],
                        prepare: Callable[[Dict[str, Any]], Dict[str, Any]]) -> BatchReport:
        report = BatchReport(key)
        fresh = self._candidates(key, items, report, prepare)
        if fresh:
            self._collection(key).extend(fresh)
            self._persist(key)
            await self._push_in_batches(key, fresh, report)
            self._persist(key)
            RECORDS_INSERTED.labels(collection=key).inc(len(fresh))
        report.inserted = fresh
        logger.info("%d records added, %d duplicates skipped, %d rejected",
                    len(fresh), report.duplicates, report.failed, extra={"collection": key})
        return report

    # ── Teachers ──

    @staticmethod
    def _prepare_teacher(data: Dict[str, Any]) -> Dict[str, Any]:
        if not data.get("department") and data.get("options"):
            data["department"] = data["options"]
        return data

    async def add_teacher(self, data: Any) -> InsertResult:
        """Add a teacher unless one with the same name (any case) exists."""
        return await self._add_one(TEACHERS_KEY, data, self._prepare_teacher)

    async def add_teachers(self, items: Iterable[Any]) -> BatchReport:
        return await self._add_many(TEACHERS_KEY, items, self._prepare_teacher)

    async def remove_teacher(self, teacher_id: Any) -> bool:
        target = str(teacher_id)
        remaining = [t for t in self.teachers if t.id != target]
        if len(remaining) == len(self.teachers):
            return False
        self.teachers[:] = remaining
        await self._apply(TEACHERS_KEY, "delete",
                          lambda: self._backend.delete(TEACHERS_KEY, [target]))
        self._persist(TEACHERS_KEY)
        logger.info("Teacher removed: id=%s", target)
        return True

    def find_teacher(self, name: Optional[str]) -> Optional[Teacher]:
        wanted = (name or "").lower()
        if not wanted:
            return None
        return next((t for t in self.teachers if t.name.lower() == wanted), None)

    # ── Subjects ──

    @staticmethod
    def _prepare_subject(data: Dict[str, Any]) -> Dict[str, Any]:
        if not data.get("subject") and data.get("name"):
            data["subject"] = data["name"]
        return data

    async def add_subject(self, data: Any) -> InsertResult:
        return await self._add_one(SUBJECTS_KEY, data, self._prepare_subject)

    async def add_subjects(self, items: Iterable[Any]) -> BatchReport:
        return await self._add_many(SUBJECTS_KEY, items, self._prepare_subject)

    async def clear_subjects(self) -> int:
        removed = len(self.subjects)
        self.subjects.clear()
        await self._apply(SUBJECTS_KEY, "delete", lambda: self._backend.delete(SUBJECTS_KEY))
        self._persist(SUBJECTS_KEY)
        return removed

    # ── Availability ──

    async def add_availability(self, entries: Iterable[Any]) -> BatchReport:
        return await self._add_many(AVAILABILITY_KEY, entries, lambda d: d)

    async def set_availability(self, entries: Iterable[Any]) -> BatchReport:
        """Replace the whole availability table."""
        self.availability.clear()
        await self._apply(AVAILABILITY_KEY, "delete", lambda: self._backend.delete(AVAILABILITY_KEY))
        report = await self.add_availability(entries)
        self._persist(AVAILABILITY_KEY)
        return report

    async def clear_availability(self) -> int:
        removed = len(self.availability)
        self.availability.clear()
        await self._apply(AVAILABILITY_KEY, "delete", lambda: self._backend.delete(AVAILABILITY_KEY))
        self._persist(AVAILABILITY_KEY)
        return removed

    def get_available_substitutes(self, day: str, time: str) -> List[str]:
        return AvailabilityIndex(self.availability).find_at_instant(day, time)

    def get_available_substitutes_for_range(self, day: str, start_time: str, end_time: str) -> List[str]:
        return AvailabilityIndex(self.availability).find_overlapping(day, start_time, end_time)

    # ── Substitutions ──

    def _resolve_slots(self, sub: Substitution) -> None:
        for slot in sub.schedule:
            if slot.substitute and not slot.substitute_id:
                teacher = self.find_teacher(slot.substitute)
                slot.substitute_id = teacher.id if teacher else None
            if slot.exceptional_substitute and not slot.exceptional_substitute_id:
                teacher = self.find_teacher(slot.exceptional_substitute)
                slot.exceptional_substitute_id = teacher.id if teacher else None
        if sub.substitute is None and sub.schedule:
            sub.substitute = sub.schedule[0].substitute

    def _index_of(self, substitution_id: Any) -> Optional[int]:
        target = str(substitution_id)
        return next((i for i, s in enumerate(self.substitutions) if s.id == target), None)

    async def add_substitution(self, data: Any) -> InsertResult:
        """Record an absence. New substitutions always start ``active``."""
        payload = {**_payload(data), "id": self._new_id(), "status": STATUS_ACTIVE}
        try:
            sub = Substitution.model_validate(payload)
        except ValidationError as exc:
            logger.warning("Rejected invalid substitution: %s", exc.errors()[0]["msg"])
            return InsertResult(InsertStatus.FAILED, error=str(exc))
        self._resolve_slots(sub)
        self.substitutions.insert(0, sub)
        synced = await self._push(SUBSTITUTIONS_KEY, [sub])
        self._persist(SUBSTITUTIONS_KEY)
        RECORDS_INSERTED.labels(collection=SUBSTITUTIONS_KEY).inc()
        logger.info("Substitution recorded: teacher=%s, date=%s", sub.teacher_name, sub.date)
        return InsertResult(InsertStatus.INSERTED, sub, remote_synced=synced)

    async def update_substitution(self, substitution_id: Any, changes: Mapping[str, Any]) -> Substitution:
        """Merge ``changes`` into a substitution. Raises KeyError / ValueError."""
        index = self._index_of(substitution_id)
        if index is None:
            raise KeyError(f"No substitution found with id '{substitution_id}'")
        current = self.substitutions[index]
        aliased = _aliased(Substitution, changes)
        aliased.pop("id", None)
        updated = Substitution.model_validate({**current.to_storage(), **aliased})
        if "schedule" in aliased and "substitute" not in aliased:
            updated.substitute = None
        self._resolve_slots(updated)
        self.substitutions[index] = updated

        stored = updated.to_storage()
        delta = {k: stored[k] for k in aliased if k in stored}
        await self._apply(SUBSTITUTIONS_KEY, "update",
                          lambda: self._backend.update(SUBSTITUTIONS_KEY, updated.id, delta))
        self._persist(SUBSTITUTIONS_KEY)
        logger.info("Substitution updated: id=%s, fields=%s", updated.id, sorted(delta))
        return updated

    async def remove_substitution(self, substitution_id: Any) -> bool:
        index = self._index_of(substitution_id)
        if index is None:
            return False
        removed = self.substitutions.pop(index)
        await self._apply(SUBSTITUTIONS_KEY, "delete",
                          lambda: self._backend.delete(SUBSTITUTIONS_KEY, [removed.id]))
        self._persist(SUBSTITUTIONS_KEY)
        return True

    async def remove_substitutions_for_teacher_and_date(self, teacher_id: Any, day: date | str) -> int:
        doomed = [s.id for s in self.substitutions if s.matches(teacher_id, day)]
        if not doomed:
            return 0
        self.substitutions[:] = [s for s in self.substitutions if s.id not in doomed]
        await self._apply(SUBSTITUTIONS_KEY, "delete",
                          lambda: self._backend.delete(SUBSTITUTIONS_KEY, doomed))
        self._persist(SUBSTITUTIONS_KEY)
        logger.info("Removed %d substitutions: teacher=%s, date=%s", len(doomed), teacher_id, day)
        return len(doomed)

    def get_substitutions_by_teacher_and_date(self, teacher_id: Any, day: date | str) -> List[Substitution]:
        return [s for s in self.substitutions if s.matches(teacher_id, day)]

    def find_substitution(self, teacher_id: Any, day: date | str,
                          start_time: str, end_time: str) -> Optional[Substitution]:
        wanted = join_time_range(start_time, end_time)
        return next(
            (s for s in self.substitutions if s.matches(teacher_id, day) and s.has_slot(wanted)),
            None,
        )

    def get_stats(self, today: Optional[date] = None) -> Dict[str, int]:
        day = today or date.today()
        todays = [s for s in self.substitutions if s.date == day]
        active = sum(1 for s in todays if s.status == STATUS_ACTIVE)
        covered = sum(1 for s in todays if s.status == STATUS_COVERED)
        return {"active": active, "covered": covered, "total": active + covered}

    # ── Backup / restore ──

    def export_backup(self) -> Dict[str, Any]:
        return {
            TEACHERS_KEY: [t.to_storage() for t in self.teachers],
            SUBJECTS_KEY: [s.to_storage() for s in self.subjects],
            SUBSTITUTIONS_KEY: [s.to_storage() for s in self.substitutions],
            AVAILABILITY_KEY: [a.to_storage() for a in self.availability],
            "exportDate": datetime.now(timezone.utc).isoformat(),
        }

    @staticmethod
    def backup_filename(today: Optional[date] = None) -> str:
        return f"backup-control-sustituciones-{(today or date.today()).isoformat()}.json"

    def restore_backup(self, data: Mapping[str, Any]) -> Dict[str, int]:
        """Replace memory and local storage with a backup. Raises ValueError.

        The remote backend is left untouched; use ``migrate_to_remote`` to
        push restored data there.
        """
        collections = {
            key: [MODELS[key].model_validate(item) for item in data.get(key) or []]
            for key in COLLECTION_KEYS
        }
        self._replace_all(collections)
        for key in COLLECTION_KEYS:
            self._persist(key)
        logger.info("Backup restored: %s", {k: len(v) for k, v in collections.items()})
        return {key: len(records) for key, records in collections.items()}

    # ── Migration ──

    async def migrate_to_remote(
        self,
        source: Optional[Mapping[str, Any]] = None,
        confirm: Optional[Callable[[int], bool]] = None,
    ) -> MigrationReport:
        """Push locally stored collections (or ``source``) to the remote backend.

        Teachers go first so subjects and availability can reference their
        remote ids. Records already present remotely are skipped.
        """
        if not self.use_remote:
            logger.warning("Migration skipped: remote backend not active")
            return MigrationReport(cancelled=True, reason="remote backend not active")

        data = source if source is not None else {k: self._local.get_item(k) or [] for k in COLLECTION_KEYS}
        total = sum(len(data.get(k) or []) for k in COLLECTION_KEYS)
        if total == 0:
            return MigrationReport(cancelled=True, reason="nothing to migrate")
        if confirm is not None and not confirm(total):
            logger.info("Migration cancelled by user")
            return MigrationReport(cancelled=True, reason="cancelled by user")

        logger.info("Starting migration of %d records", total)
        report = MigrationReport()
        report.reports[TEACHERS_KEY] = await self.add_teachers(data.get(TEACHERS_KEY) or [])
        report.reports[SUBJECTS_KEY] = await self.add_subjects(data.get(SUBJECTS_KEY) or [])
        report.reports[AVAILABILITY_KEY] = await self.add_availability(data.get(AVAILABILITY_KEY) or [])
        report.reports[SUBSTITUTIONS_KEY] = await self._migrate_substitutions(
            data.get(SUBSTITUTIONS_KEY) or []
        )
        logger.info("Migration finished: ok=%s", report.ok)
        return report

    async def _migrate_substitutions(self, items: List[Any]) -> BatchReport:
        report = BatchReport(SUBSTITUTIONS_KEY)
        seen = {(s.teacher_name.lower(), s.date, s.reason) for s in self.substitutions}
        fresh: List[Substitution] = []
        for item in items:
            try:
                sub = Substitution.model_validate({**_payload(item), "id": self._new_id()})
            except ValidationError:
                report.failed += 1
                continue
            key = (sub.teacher_name.lower(), sub.date, sub.reason)
            if key in seen:
                report.duplicates += 1
                continue
            seen.add(key)
            # Local teacher ids mean nothing remotely; re-point by name.
            teacher = self.find_teacher(sub.teacher_name)
            if teacher is not None:
                sub.teacher_id = teacher.id
            for slot in sub.schedule:
                slot.substitute_id = None
                slot.exceptional_substitute_id = None
            self._resolve_slots(sub)
            fresh.append(sub)
        if fresh:
            self.substitutions[:0] = fresh
            await self._push_in_batches(SUBSTITUTIONS_KEY, fresh, report)
            self._persist(SUBSTITUTIONS_KEY)
        report.inserted = fresh
        return report
