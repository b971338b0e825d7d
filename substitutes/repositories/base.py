# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Persistence adapter contract shared by the remote and local backends.

Collections are addressed by their local storage keys. Records travel as
camelCase dicts; each one carries the id the store assigned to it, which
``insert`` uses as a correlation token.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class RemoteSyncError(Exception):
    """The backend answered, but not with what the store needs."""


class PartialInsertError(RemoteSyncError):
    """Parent rows were saved but dependent rows were not.

    ``assigned`` maps the ids sent to the ids the backend gave the saved rows.
    """

    def __init__(self, message: str, assigned: Dict[str, str]):
        super().__init__(message)
        self.assigned = assigned


class PersistenceAdapter(ABC):
    is_remote: bool = False
    name: str = "adapter"

    @abstractmethod
    async def probe(self) -> bool:
        """Cheap reachability check; never raises."""

    @abstractmethod
    async def load(self, collection: str) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def insert(self, collection: str, records: List[Dict[str, Any]]) -> Dict[str, str]:
        """Persist ``records``; return a map of client id -> backend id."""

    @abstractmethod
    async def update(self, collection: str, record_id: str, changes: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def delete(self, collection: str, record_ids: Optional[List[str]] = None) -> None:
        """Delete the given ids, or every record when ``record_ids`` is None."""

    async def aclose(self) -> None:
        return None
