# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Tests for SubstitutionStore: de-duplication, write-through, backend
selection, batching, reconciliation of backend ids, backup and migration.
"""

from datetime import date

import json

import httpx
import pytest

from conftest import FakeRemote, RecordingPacer
from substitutes.repositories.local_storage import (
    AVAILABILITY_KEY,
    SUBJECTS_KEY,
    SUBSTITUTIONS_KEY,
    TEACHERS_KEY,
)
from substitutes.repositories.supabase_adapter import SupabaseAdapter
from substitutes.services.pacing import FixedDelayPacer, NoDelayPacer
from substitutes.services.store import InsertStatus, SubstitutionStore

DAY = date(2026, 3, 2)


async def remote_store(local_storage, remote, pacer=None, batch_size=50):
    s = SubstitutionStore(
        local_storage, remote=remote, pacer=pacer, batch_size=batch_size, seed_defaults=False,
    )
    await s.init()
    return s


def substitution_payload(**overrides):
    payload = {
        "teacherId": "t-1",
        "teacherName": "Ana Martinez",
        "date": DAY.isoformat(),
        "reason": "Enfermedad",
        "schedule": [
            {"time": "08:00 - 09:00", "subject": "Ingles", "courseGroup": "1A", "substitute": "Juan Lopez"},
            {"time": "09:00 - 10:00", "subject": "Ingles", "courseGroup": "2B"},
        ],
    }
    payload.update(overrides)
    return payload


# ============================================
# Teachers
# ============================================
class TestTeachers:
    @pytest.mark.anyio
    async def test_add_teacher(self, store, local_storage):
        result = await store.add_teacher({"name": "Ana Martinez", "department": "Ingles"})
        assert result.status is InsertStatus.INSERTED
        assert result.inserted
        assert result.remote_synced is True
        assert store.teachers[0].name == "Ana Martinez"
        assert local_storage.get_item(TEACHERS_KEY)[0]["name"] == "Ana Martinez"

    @pytest.mark.anyio
    async def test_duplicate_name_is_case_insensitive(self, store):
        await store.add_teacher({"name": "Ana"})
        result = await store.add_teacher({"name": "ana"})
        assert result.status is InsertStatus.DUPLICATE
        assert len(store.teachers) == 1

    @pytest.mark.anyio
    async def test_blank_name_fails(self, store):
        result = await store.add_teacher({"name": "   "})
        assert result.status is InsertStatus.FAILED
        assert result.error
        assert store.teachers == []

    @pytest.mark.anyio
    async def test_options_fills_missing_department(self, store):
        result = await store.add_teacher({"name": "Carlos Ruiz", "options": "Historia"})
        assert result.record.department == "Historia"

    @pytest.mark.anyio
    async def test_batch_skips_duplicates_within_input(self, store):
        report = await store.add_teachers([{"name": "Ana"}, {"name": "ANA"}, {"name": "Juan"}])
        assert [t.name for t in report.inserted] == ["Ana", "Juan"]
        assert report.duplicates == 1
        assert len(store.teachers) == 2

    @pytest.mark.anyio
    async def test_remove_teacher(self, store, local_storage):
        result = await store.add_teacher({"name": "Ana"})
        assert await store.remove_teacher(result.record.id) is True
        assert store.teachers == []
        assert local_storage.get_item(TEACHERS_KEY) == []

    @pytest.mark.anyio
    async def test_remove_unknown_teacher(self, store):
        assert await store.remove_teacher("missing") is False

    @pytest.mark.anyio
    async def test_find_teacher_by_name(self, store):
        await store.add_teacher({"name": "Maria Garcia"})
        assert store.find_teacher("maria garcia").name == "Maria Garcia"
        assert store.find_teacher("") is None
        assert store.find_teacher(None) is None


# ============================================
# Subjects
# ============================================
class TestSubjects:
    @pytest.mark.anyio
    async def test_course_group_is_part_of_identity(self, store):
        base = {"teacher": "Ana", "day": "Lunes", "time": "08:00 - 09:00", "subject": "Ingles"}
        first = await store.add_subject({**base, "courseGroup": "1A"})
        second = await store.add_subject({**base, "courseGroup": "1B"})
        again = await store.add_subject({**base, "subject": "INGLES", "courseGroup": "1A"})
        assert first.status is InsertStatus.INSERTED
        assert second.status is InsertStatus.INSERTED
        assert again.status is InsertStatus.DUPLICATE
        assert len(store.subjects) == 2

    @pytest.mark.anyio
    async def test_time_format_does_not_change_identity(self, store):
        base = {"teacher": "Ana", "day": "Lunes", "subject": "Ingles", "courseGroup": "1A"}
        await store.add_subject({**base, "time": "08:00 - 09:00"})
        again = await store.add_subject({**base, "time": "08:00:00 - 09:00:00"})
        assert again.status is InsertStatus.DUPLICATE
        assert len(store.subjects) == 1

    @pytest.mark.anyio
    async def test_name_fills_missing_subject(self, store):
        result = await store.add_subject({"teacher": "Ana", "name": "Ingles"})
        assert result.record.subject == "Ingles"

    @pytest.mark.anyio
    async def test_clear_subjects(self, store, local_storage):
        await store.add_subjects([{"subject": "A"}, {"subject": "B"}])
        assert await store.clear_subjects() == 2
        assert store.subjects == []
        assert local_storage.get_item(SUBJECTS_KEY) == []


# ============================================
# Availability
# ============================================
class TestAvailability:
    @pytest.mark.anyio
    async def test_lookups_through_store(self, store):
        await store.add_availability([
            {"teacher": "Juan Lopez", "day": "Lunes", "startTime": "08:00", "endTime": "10:00"},
            {"teacher": "Ana Martinez", "day": "mar", "startTime": "09:00", "endTime": "11:00"},
        ])
        assert store.get_available_substitutes("lunes", "09:00") == ["Juan Lopez"]
        assert store.get_available_substitutes_for_range("Martes", "10:30", "12:00") == ["Ana Martinez"]

    @pytest.mark.anyio
    async def test_duplicate_windows_skipped(self, store):
        window = {"teacher": "Juan", "day": "Lunes", "startTime": "08:00", "endTime": "10:00"}
        await store.add_availability([window])
        report = await store.add_availability([{**window, "teacher": "JUAN"}])
        assert report.duplicates == 1
        assert len(store.availability) == 1

    @pytest.mark.anyio
    async def test_seconds_in_window_times_are_duplicates(self, store):
        await store.add_availability([{"teacher": "Juan", "day": "Lunes", "startTime": "08:00", "endTime": "10:00"}])
        report = await store.add_availability(
            [{"teacher": "Juan", "day": "Lunes", "startTime": "08:00:00", "endTime": "10:00:00"}]
        )
        assert report.duplicates == 1
        assert len(store.availability) == 1

    @pytest.mark.anyio
    async def test_set_availability_replaces(self, store, local_storage):
        await store.add_availability([{"teacher": "Old", "day": "Lunes", "startTime": "08:00", "endTime": "09:00"}])
        await store.set_availability([{"teacher": "New", "day": "Lunes", "startTime": "08:00", "endTime": "09:00"}])
        assert [a.teacher for a in store.availability] == ["New"]
        assert [a["teacher"] for a in local_storage.get_item(AVAILABILITY_KEY)] == ["New"]

    @pytest.mark.anyio
    async def test_clear_availability(self, store):
        await store.add_availability([{"teacher": "Juan", "day": "Lunes", "startTime": "08:00", "endTime": "09:00"}])
        assert await store.clear_availability() == 1
        assert store.get_available_substitutes("Lunes", "08:30") == []


# ============================================
# Substitutions
# ============================================
class TestSubstitutions:
    @pytest.mark.anyio
    async def test_new_substitution_is_active_and_first(self, store):
        await store.add_substitution(substitution_payload(reason="Curso"))
        result = await store.add_substitution(substitution_payload(status="covered"))
        assert result.status is InsertStatus.INSERTED
        assert result.record.status == "active"
        assert store.substitutions[0].id == result.record.id

    @pytest.mark.anyio
    async def test_slot_substitutes_resolved_by_name(self, store):
        teacher = (await store.add_teacher({"name": "Juan Lopez"})).record
        sub = (await store.add_substitution(substitution_payload())).record
        assert sub.schedule[0].substitute_id == teacher.id
        assert sub.schedule[0].covered is True
        assert sub.schedule[1].covered is False
        assert sub.substitute == "Juan Lopez"

    @pytest.mark.anyio
    async def test_invalid_substitution_fails(self, store):
        result = await store.add_substitution({"teacherName": "Ana", "date": "not-a-date"})
        assert result.status is InsertStatus.FAILED
        assert store.substitutions == []

    @pytest.mark.anyio
    async def test_update_substitution(self, store, local_storage):
        sub = (await store.add_substitution(substitution_payload())).record
        updated = await store.update_substitution(sub.id, {"status": "covered", "reason": "Baja"})
        assert updated.id == sub.id
        assert updated.status == "covered"
        assert updated.reason == "Baja"
        assert local_storage.get_item(SUBSTITUTIONS_KEY)[0]["status"] == "covered"

    @pytest.mark.anyio
    async def test_update_accepts_snake_case(self, store):
        sub = (await store.add_substitution(substitution_payload())).record
        updated = await store.update_substitution(sub.id, {"teacher_name": "Maria Garcia"})
        assert updated.teacher_name == "Maria Garcia"

    @pytest.mark.anyio
    async def test_update_schedule_recomputes_substitute(self, store):
        sub = (await store.add_substitution(substitution_payload())).record
        updated = await store.update_substitution(
            sub.id, {"schedule": [{"time": "08:00 - 09:00", "substitute": "Carlos Ruiz"}]},
        )
        assert updated.substitute == "Carlos Ruiz"
        assert len(updated.schedule) == 1

    @pytest.mark.anyio
    async def test_update_missing_raises_key_error(self, store):
        with pytest.raises(KeyError):
            await store.update_substitution("missing", {"status": "covered"})

    @pytest.mark.anyio
    async def test_update_invalid_raises_value_error(self, store):
        sub = (await store.add_substitution(substitution_payload())).record
        with pytest.raises(ValueError):
            await store.update_substitution(sub.id, {"date": "31/31/2026"})

    @pytest.mark.anyio
    async def test_remove_substitution(self, store):
        sub = (await store.add_substitution(substitution_payload())).record
        assert await store.remove_substitution(sub.id) is True
        assert await store.remove_substitution(sub.id) is False

    @pytest.mark.anyio
    async def test_remove_for_teacher_and_date(self, store):
        await store.add_substitution(substitution_payload())
        await store.add_substitution(substitution_payload(reason="Otra"))
        await store.add_substitution(substitution_payload(date="2026-03-03"))
        assert await store.remove_substitutions_for_teacher_and_date("t-1", DAY) == 2
        assert len(store.substitutions) == 1
        assert await store.remove_substitutions_for_teacher_and_date("t-1", DAY) == 0

    @pytest.mark.anyio
    async def test_queries_by_teacher_and_date(self, store):
        await store.add_substitution(substitution_payload())
        assert len(store.get_substitutions_by_teacher_and_date("t-1", "2026-03-02")) == 1
        assert store.get_substitutions_by_teacher_and_date("t-2", DAY) == []

        found = store.find_substitution("t-1", DAY, "09:00", "10:00")
        assert found is not None
        assert store.find_substitution("t-1", DAY, "10:00", "11:00") is None
        assert store.find_substitution("t-1", DAY, "09:00:00", "10:00:00") is found

    @pytest.mark.anyio
    async def test_stats_count_todays_records(self, store):
        first = (await store.add_substitution(substitution_payload())).record
        await store.add_substitution(substitution_payload(reason="Curso"))
        await store.add_substitution(substitution_payload(date="2026-03-05"))
        await store.update_substitution(first.id, {"status": "covered"})
        assert store.get_stats(DAY) == {"active": 1, "covered": 1, "total": 2}


# ============================================
# Local persistence
# ============================================
class TestLocalPersistence:
    @pytest.mark.anyio
    async def test_reload_keeps_ids(self, store, local_storage):
        teacher = (await store.add_teacher({"name": "Ana"})).record
        sub = (await store.add_substitution(substitution_payload())).record

        reloaded = SubstitutionStore(local_storage, seed_defaults=False)
        await reloaded.init()
        assert reloaded.teachers[0].id == teacher.id
        assert reloaded.substitutions[0].id == sub.id
        assert reloaded.substitutions[0].date == DAY
        assert reloaded.backend_name == "local"

    @pytest.mark.anyio
    async def test_seed_defaults_only_once(self, local_storage):
        seeded = SubstitutionStore(local_storage)
        await seeded.init()
        assert [t.name for t in seeded.teachers][:2] == ["Maria Garcia", "Juan Lopez"]
        assert len(seeded.teachers) == 4
        assert seeded.substitutions[0].reason == "Enfermedad"

        await seeded.remove_teacher("1")
        again = SubstitutionStore(local_storage)
        await again.init()
        assert len(again.teachers) == 3

    @pytest.mark.anyio
    async def test_local_only_batches_do_not_pause(self, local_storage):
        pacer = RecordingPacer()
        s = SubstitutionStore(local_storage, pacer=pacer, batch_size=2, seed_defaults=False)
        await s.init()
        report = await s.add_teachers([{"name": f"T{i}"} for i in range(5)])
        assert report.batches == 3
        assert pacer.pauses == 0


# ============================================
# Remote backend
# ============================================
class TestRemoteBackend:
    @pytest.mark.anyio
    async def test_reachable_remote_is_used(self, local_storage, remote):
        s = await remote_store(local_storage, remote)
        assert s.use_remote is True
        assert s.backend_name == "fake-remote"

    @pytest.mark.anyio
    async def test_unreachable_remote_falls_back(self, local_storage):
        s = await remote_store(local_storage, FakeRemote(reachable=False))
        assert s.use_remote is False
        assert s.data_loaded is True

    @pytest.mark.anyio
    async def test_failed_load_falls_back_to_local(self, local_storage, store):
        await store.add_teacher({"name": "Offline Teacher"})
        broken = FakeRemote()
        broken.fail_load = True
        s = await remote_store(local_storage, broken)
        assert s.use_remote is False
        assert [t.name for t in s.teachers] == ["Offline Teacher"]

    @pytest.mark.anyio
    async def test_loads_from_remote(self, local_storage, remote):
        remote.tables[TEACHERS_KEY] = [{"id": 7, "name": "Remote Teacher"}]
        s = await remote_store(local_storage, remote)
        assert s.teachers[0].id == "7"

    @pytest.mark.anyio
    async def test_insert_adopts_backend_id(self, local_storage, remote):
        s = await remote_store(local_storage, remote)
        result = await s.add_teacher({"name": "Ana"})
        assert result.remote_synced is True
        assert result.record.id.startswith("remote-")
        assert local_storage.get_item(TEACHERS_KEY)[0]["id"] == result.record.id

    @pytest.mark.anyio
    async def test_failed_schedule_rows_still_adopt_parent_id(self, local_storage):
        def respond(request):
            if request.method == "GET":
                return httpx.Response(200, json=[])
            if request.url.path.endswith("/substitution_schedules"):
                return httpx.Response(500)
            sent = json.loads(request.content)
            return httpx.Response(201, json=[{"id": "db-1", "client_ref": sent[0]["client_ref"]}])

        client = httpx.AsyncClient(transport=httpx.MockTransport(respond))
        adapter = SupabaseAdapter("https://project.supabase.co", "anon-key", http_client=client)
        s = await remote_store(local_storage, adapter)
        assert s.use_remote is True

        result = await s.add_substitution(substitution_payload())
        assert result.status is InsertStatus.INSERTED
        assert result.remote_synced is False
        assert result.record.id == "db-1"
        assert local_storage.get_item(SUBSTITUTIONS_KEY)[0]["id"] == "db-1"

    @pytest.mark.anyio
    async def test_subject_carries_teacher_reference(self, local_storage, remote):
        s = await remote_store(local_storage, remote)
        teacher = (await s.add_teacher({"name": "Ana"})).record
        await s.add_subject({"teacher": "ana", "subject": "Ingles"})
        assert remote.tables[SUBJECTS_KEY][0]["teacherId"] == teacher.id

    @pytest.mark.anyio
    async def test_remote_failure_keeps_local_change(self, local_storage, remote):
        s = await remote_store(local_storage, remote)
        remote.fail_on.add("insert")
        result = await s.add_teacher({"name": "Ana"})
        assert result.status is InsertStatus.INSERTED
        assert result.remote_synced is False
        assert not result.record.id.startswith("remote-")
        assert local_storage.get_item(TEACHERS_KEY)[0]["name"] == "Ana"

    @pytest.mark.anyio
    async def test_batches_pause_between_remote_calls(self, local_storage, remote):
        pacer = RecordingPacer()
        s = await remote_store(local_storage, remote, pacer=pacer, batch_size=2)
        report = await s.add_teachers([{"name": f"T{i}"} for i in range(5)])
        inserts = [c for c in remote.calls if c[0] == "insert"]
        assert [c[2] for c in inserts] == [2, 2, 1]
        assert report.batches == 3
        assert pacer.pauses == 2
        assert report.failed_batches == []

    @pytest.mark.anyio
    async def test_failed_batch_is_reported(self, local_storage, remote):
        s = await remote_store(local_storage, remote, batch_size=2)
        remote.fail_on.add("insert")
        report = await s.add_teachers([{"name": "A"}, {"name": "B"}, {"name": "C"}])
        assert report.failed_batches == [1, 2]
        assert len(s.teachers) == 3

    @pytest.mark.anyio
    async def test_update_and_deletes_propagate(self, local_storage, remote):
        s = await remote_store(local_storage, remote)
        sub = (await s.add_substitution(substitution_payload())).record
        await s.update_substitution(sub.id, {"status": "covered"})
        await s.clear_subjects()
        await s.remove_substitution(sub.id)
        assert ("update", SUBSTITUTIONS_KEY, sub.id, {"status": "covered"}) in remote.calls
        assert ("delete", SUBJECTS_KEY, None) in remote.calls
        assert ("delete", SUBSTITUTIONS_KEY, [sub.id]) in remote.calls

    @pytest.mark.anyio
    async def test_close_releases_remote(self, local_storage, remote):
        s = await remote_store(local_storage, remote)
        await s.close()
        assert remote.closed is True


# ============================================
# Backup / restore
# ============================================
class TestBackup:
    @pytest.mark.anyio
    async def test_export_contains_every_collection(self, store):
        await store.add_teacher({"name": "Ana"})
        backup = store.export_backup()
        assert set(backup) == {TEACHERS_KEY, SUBJECTS_KEY, SUBSTITUTIONS_KEY, AVAILABILITY_KEY, "exportDate"}
        assert backup[TEACHERS_KEY][0]["name"] == "Ana"

    def test_backup_filename(self):
        assert SubstitutionStore.backup_filename(DAY) == "backup-control-sustituciones-2026-03-02.json"

    @pytest.mark.anyio
    async def test_restore_replaces_data(self, store, local_storage):
        await store.add_teacher({"name": "Old"})
        counts = store.restore_backup({
            TEACHERS_KEY: [{"id": "9", "name": "Restored"}],
            SUBSTITUTIONS_KEY: [{"id": "s1", "teacherName": "Restored", "date": "2026-03-02"}],
        })
        assert counts[TEACHERS_KEY] == 1
        assert counts[SUBJECTS_KEY] == 0
        assert [t.name for t in store.teachers] == ["Restored"]
        assert local_storage.get_item(SUBSTITUTIONS_KEY)[0]["id"] == "s1"

    @pytest.mark.anyio
    async def test_restore_rejects_invalid_backup(self, store):
        await store.add_teacher({"name": "Kept"})
        with pytest.raises(ValueError):
            store.restore_backup({TEACHERS_KEY: [{"name": ""}]})
        assert [t.name for t in store.teachers] == ["Kept"]


# ============================================
# Migration
# ============================================
class TestMigration:
    @pytest.mark.anyio
    async def test_local_only_store_cannot_migrate(self, store):
        report = await store.migrate_to_remote()
        assert report.cancelled is True
        assert report.ok is False

    @pytest.mark.anyio
    async def test_nothing_to_migrate(self, local_storage, remote):
        s = await remote_store(local_storage, remote)
        report = await s.migrate_to_remote()
        assert report.cancelled is True
        assert report.reason == "nothing to migrate"

    @pytest.mark.anyio
    async def test_declined_confirmation(self, store, local_storage, remote):
        await store.add_teacher({"name": "Ana"})
        s = await remote_store(local_storage, remote)
        report = await s.migrate_to_remote(confirm=lambda total: False)
        assert report.cancelled is True
        assert TEACHERS_KEY not in remote.tables

    @pytest.mark.anyio
    async def test_migrates_local_data(self, store, local_storage, remote):
        await store.add_teacher({"name": "Ana Martinez"})
        await store.add_teacher({"name": "Juan Lopez"})
        await store.add_subject({"teacher": "Ana Martinez", "subject": "Ingles"})
        await store.add_availability([{"teacher": "Juan Lopez", "day": "Lunes", "startTime": "08:00", "endTime": "10:00"}])
        await store.add_substitution(substitution_payload())

        s = await remote_store(local_storage, remote)
        asked = []
        report = await s.migrate_to_remote(confirm=lambda total: asked.append(total) or True)

        assert asked == [5]
        assert report.ok is True
        assert len(report.reports[TEACHERS_KEY].inserted) == 2
        ana = s.find_teacher("Ana Martinez")
        juan = s.find_teacher("Juan Lopez")
        assert ana.id.startswith("remote-")
        assert remote.tables[SUBJECTS_KEY][0]["teacherId"] == ana.id
        migrated = s.substitutions[0]
        assert migrated.teacher_name == "Ana Martinez"
        assert migrated.teacher_id == ana.id
        assert migrated.schedule[0].substitute_id == juan.id

    @pytest.mark.anyio
    async def test_second_migration_skips_existing(self, store, local_storage, remote):
        await store.add_teacher({"name": "Ana Martinez"})
        await store.add_substitution(substitution_payload())

        s = await remote_store(local_storage, remote)
        await s.migrate_to_remote()
        report = await s.migrate_to_remote()
        assert report.reports[TEACHERS_KEY].duplicates == 1
        assert report.reports[SUBSTITUTIONS_KEY].duplicates == 1
        assert len(remote.tables[TEACHERS_KEY]) == 1

    @pytest.mark.anyio
    async def test_backend_time_format_does_not_duplicate(self, store, local_storage, remote):
        await store.add_subject(
            {"teacher": "Ana Martinez", "day": "Lunes", "time": "08:00 - 09:00", "subject": "Ingles", "courseGroup": "1A"}
        )
        await store.add_availability([{"teacher": "Juan Lopez", "day": "Lunes", "startTime": "08:00", "endTime": "10:00"}])
        remote.tables[SUBJECTS_KEY] = [{
            "id": "r1", "teacher": "Ana Martinez", "day": "Lunes", "time": "08:00:00 - 09:00:00",
            "subject": "Ingles", "courseGroup": "1A",
        }]
        remote.tables[AVAILABILITY_KEY] = [
            {"id": "r2", "teacher": "Juan Lopez", "day": "Lunes", "startTime": "08:00:00", "endTime": "10:00:00"},
        ]

        s = await remote_store(local_storage, remote)
        report = await s.migrate_to_remote()
        assert report.reports[SUBJECTS_KEY].duplicates == 1
        assert report.reports[AVAILABILITY_KEY].duplicates == 1
        assert len(remote.tables[SUBJECTS_KEY]) == 1
        assert len(remote.tables[AVAILABILITY_KEY]) == 1

    @pytest.mark.anyio
    async def test_explicit_source(self, local_storage, remote):
        s = await remote_store(local_storage, remote)
        report = await s.migrate_to_remote(source={TEACHERS_KEY: [{"name": "From File"}]})
        assert report.ok is True
        assert remote.tables[TEACHERS_KEY][0]["name"] == "From File"


# ============================================
# Pacing
# ============================================
class TestPacing:
    @pytest.mark.anyio
    async def test_fixed_delay_uses_injected_sleep(self):
        slept = []

        async def fake_sleep(seconds):
            slept.append(seconds)

        await FixedDelayPacer(0.25, sleep=fake_sleep).pause()
        await FixedDelayPacer(0, sleep=fake_sleep).pause()
        assert slept == [0.25]

    @pytest.mark.anyio
    async def test_no_delay_pacer(self):
        assert await NoDelayPacer().pause() is None
