# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Remote backend: Supabase / PostgREST over HTTP.

Non-2xx answers raise ``httpx.HTTPStatusError``; the store decides what a
failure means. Only ``probe`` swallows errors.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from substitutes.core.logging import get_logger
from substitutes.repositories import mapping
from substitutes.repositories.base import PartialInsertError, PersistenceAdapter, RemoteSyncError
from substitutes.repositories.local_storage import SUBSTITUTIONS_KEY, TEACHERS_KEY

logger = get_logger(__name__)


class SupabaseAdapter(PersistenceAdapter):
    is_remote = True
    name = "supabase"

    def __init__(
        self,
        url: str,
        api_key: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        correlation_column: str = "client_ref",
    ):
        self._base = f"{url.rstrip('/')}/rest/v1"
        self._headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None
        self._correlation = correlation_column

    # ── HTTP plumbing ──

    async def _request(
        self,
        method: str,
        table: str,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        returning: bool = False,
    ) -> Any:
        headers = dict(self._headers)
        if returning:
            headers["Prefer"] = "return=representation"
        resp = await self._client.request(
            method, f"{self._base}/{table}", params=params, json=json, headers=headers,
        )
        resp.raise_for_status()
        if returning or method == "GET":
            return resp.json()
        return None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ── Contract ──

    async def probe(self) -> bool:
        try:
            await self._request(
                "GET", mapping.TABLES[TEACHERS_KEY], params={"select": "id", "limit": "1"},
            )
        except httpx.HTTPError as exc:
            logger.warning("Remote backend unreachable: %s", exc)
            return False
        logger.info("Remote backend reachable: %s", self._base)
        return True

    async def load(self, collection: str) -> List[Dict[str, Any]]:
        rows = await self._request(
            "GET",
            mapping.TABLES[collection],
            params={"select": mapping.SELECTS[collection], "order": mapping.ORDERING[collection]},
        )
        from_row = mapping.FROM_ROW[collection]
        return [from_row(r) for r in rows or []]

    async def insert(self, collection: str, records: List[Dict[str, Any]]) -> Dict[str, str]:
        if not records:
            return {}
        to_row = mapping.TO_ROW[collection]
        rows = []
        for rec in records:
            row = to_row(rec)
            if self._correlation:
                row[self._correlation] = rec["id"]
            rows.append(row)

        saved = await self._request("POST", mapping.TABLES[collection], json=rows, returning=True)
        assigned = self._correlate(records, saved or [])

        if collection == SUBSTITUTIONS_KEY:
            try:
                await self._insert_slots(records, assigned)
            except httpx.HTTPError as exc:
                raise PartialInsertError(f"Schedule rows not saved: {exc}", assigned) from exc
        return assigned

    def _correlate(self, records: List[Dict[str, Any]], saved: List[Dict[str, Any]]) -> Dict[str, str]:
        if len(saved) != len(records):
            raise RemoteSyncError(
                f"Backend returned {len(saved)} rows for {len(records)} inserted records"
            )
        if self._correlation:
            return {str(row[self._correlation]): str(row["id"]) for row in saved}
        # Without a correlation column the backend's return order is trusted.
        return {rec["id"]: str(row["id"]) for rec, row in zip(records, saved)}

    async def _insert_slots(self, records: List[Dict[str, Any]], assigned: Dict[str, str]) -> None:
        slot_rows = [
            mapping.slot_to_row(slot, assigned[rec["id"]])
            for rec in records
            if rec["id"] in assigned
            for slot in rec.get("schedule") or []
        ]
        if slot_rows:
            await self._request("POST", mapping.SCHEDULES_TABLE, json=slot_rows)

    async def update(self, collection: str, record_id: str, changes: Dict[str, Any]) -> None:
        if collection != SUBSTITUTIONS_KEY:
            raise RemoteSyncError(f"Updates are not supported for '{collection}'")
        row = mapping.substitution_changes_to_row(changes)
        row["updated_at"] = datetime.now(timezone.utc).isoformat()
        await self._request(
            "PATCH", mapping.TABLES[collection], params={"id": f"eq.{record_id}"}, json=row,
        )
        if "schedule" in changes:
            await self._request(
                "DELETE", mapping.SCHEDULES_TABLE, params={"substitution_id": f"eq.{record_id}"},
            )
            slot_rows = [mapping.slot_to_row(s, record_id) for s in changes["schedule"] or []]
            if slot_rows:
                await self._request("POST", mapping.SCHEDULES_TABLE, json=slot_rows)

    async def delete(self, collection: str, record_ids: Optional[List[str]] = None) -> None:
        if record_ids is None:
            params = {"id": "not.is.null"}
        elif not record_ids:
            return
        elif len(record_ids) == 1:
            params = {"id": f"eq.{record_ids[0]}"}
        else:
            params = {"id": f"in.({','.join(record_ids)})"}
        await self._request("DELETE", mapping.TABLES[collection], params=params)
