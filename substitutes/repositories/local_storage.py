# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Local fallback storage.
String-keyed, JSON-encoded values; every write replaces the whole value.
"""
import json
from typing import Any, List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine

from substitutes.core.logging import get_logger

logger = get_logger(__name__)

TEACHERS_KEY = "teachers"
SUBJECTS_KEY = "subjects"
SUBSTITUTIONS_KEY = "substitutions"
AVAILABILITY_KEY = "substitutionSchedule"

COLLECTION_KEYS = (TEACHERS_KEY, SUBJECTS_KEY, SUBSTITUTIONS_KEY, AVAILABILITY_KEY)


class LocalStorage:
    """Key-value store kept in a single ``local_storage`` table."""

    def __init__(self, engine: Engine):
        self._engine = engine
        self._schema_ready = False

    def ensure_schema(self) -> None:
        if self._schema_ready:
            return
        with self._engine.begin() as conn:
            conn.execute(text("""
                CREATE TABLE IF NOT EXISTS local_storage (
                    key   VARCHAR(255) PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """))
        self._schema_ready = True

    # ── Read ──

    def get_item(self, key: str) -> Optional[Any]:
        self.ensure_schema()
        with self._engine.connect() as conn:
            raw = conn.execute(
                text("SELECT value FROM local_storage WHERE key = :key"), {"key": key}
            ).scalar()
        return json.loads(raw) if raw is not None else None

    def has_item(self, key: str) -> bool:
        return self.get_item(key) is not None

    def keys(self) -> List[str]:
        self.ensure_schema()
        with self._engine.connect() as conn:
            rows = conn.execute(text("SELECT key FROM local_storage ORDER BY key")).fetchall()
        return [r[0] for r in rows]

    # ── Write ──

    def set_item(self, key: str, value: Any) -> None:
        self.ensure_schema()
        payload = json.dumps(value, ensure_ascii=False)
        with self._engine.begin() as conn:
            conn.execute(
                text("""
                    INSERT INTO local_storage (key, value) VALUES (:key, :value)
                    ON CONFLICT (key) DO UPDATE SET value = excluded.value
                """),
                {"key": key, "value": payload},
            )
        logger.debug("Local storage written: key=%s, bytes=%d", key, len(payload))

    def remove_item(self, key: str) -> None:
        self.ensure_schema()
        with self._engine.begin() as conn:
            conn.execute(text("DELETE FROM local_storage WHERE key = :key"), {"key": key})
