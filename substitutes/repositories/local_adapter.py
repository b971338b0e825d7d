# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Local-only backend: the store's write-through is the persistence."""
from typing import Any, Dict, List, Optional

from substitutes.repositories.base import PersistenceAdapter
from substitutes.repositories.local_storage import LocalStorage


class LocalAdapter(PersistenceAdapter):
    is_remote = False
    name = "local"

    def __init__(self, storage: LocalStorage):
        self._storage = storage

    async def probe(self) -> bool:
        return True

    async def load(self, collection: str) -> List[Dict[str, Any]]:
        return self._storage.get_item(collection) or []

    async def insert(self, collection: str, records: List[Dict[str, Any]]) -> Dict[str, str]:
        # Client ids are final; the store persists the full collection itself.
        return {r["id"]: r["id"] for r in records}

    async def update(self, collection: str, record_id: str, changes: Dict[str, Any]) -> None:
        return None

    async def delete(self, collection: str, record_ids: Optional[List[str]] = None) -> None:
        return None
