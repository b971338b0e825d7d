# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Shared fixtures: throwaway SQLite local storage and an in-memory remote."""

import uuid

import httpx
import pytest

from substitutes.core.database import build_engine
from substitutes.repositories.base import PersistenceAdapter, RemoteSyncError
from substitutes.repositories.local_storage import LocalStorage
from substitutes.services.store import SubstitutionStore


class FakeRemote(PersistenceAdapter):
    """Remote backend double that assigns its own ids."""

    is_remote = True
    name = "fake-remote"

    def __init__(self, reachable=True):
        self.reachable = reachable
        self.tables = {}
        self.calls = []
        self.fail_on = set()
        self.fail_load = False
        self.closed = False

    def _maybe_fail(self, operation):
        if operation in self.fail_on:
            raise httpx.ConnectError(f"{operation} refused")

    async def probe(self):
        return self.reachable

    async def load(self, collection):
        self.calls.append(("load", collection))
        if self.fail_load:
            raise RemoteSyncError("load exploded")
        return [dict(r) for r in self.tables.get(collection, [])]

    async def insert(self, collection, records):
        self.calls.append(("insert", collection, len(records)))
        self._maybe_fail("insert")
        assigned = {}
        for rec in records:
            backend_id = f"remote-{uuid.uuid4().hex[:8]}"
            self.tables.setdefault(collection, []).append({**rec, "id": backend_id})
            assigned[rec["id"]] = backend_id
        return assigned

    async def update(self, collection, record_id, changes):
        self.calls.append(("update", collection, record_id, dict(changes)))
        self._maybe_fail("update")
        for row in self.tables.get(collection, []):
            if row["id"] == record_id:
                row.update(changes)

    async def delete(self, collection, record_ids=None):
        self.calls.append(("delete", collection, record_ids))
        self._maybe_fail("delete")
        if record_ids is None:
            self.tables[collection] = []
        else:
            self.tables[collection] = [
                r for r in self.tables.get(collection, []) if r["id"] not in record_ids
            ]

    async def aclose(self):
        self.closed = True


class RecordingPacer:
    def __init__(self):
        self.pauses = 0

    async def pause(self):
        self.pauses += 1


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def local_storage(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'substitutes.db'}")
    return LocalStorage(engine)


@pytest.fixture
def store(local_storage):
    """Local-only store with no seed data, already loaded."""
    s = SubstitutionStore(local_storage, seed_defaults=False)
    s.load_all_from_local()
    s.data_loaded = True
    return s


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def pacer():
    return RecordingPacer()
