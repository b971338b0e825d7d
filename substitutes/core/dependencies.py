# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
FastAPI dependency injection — wire storage, backend and store.
"""

from substitutes.core.config import settings
from substitutes.core.database import engine
from substitutes.repositories.local_storage import LocalStorage
from substitutes.repositories.supabase_adapter import SupabaseAdapter
from substitutes.services.pacing import FixedDelayPacer
from substitutes.services.store import SubstitutionStore


def build_remote_adapter() -> SupabaseAdapter | None:
    """Remote handle, or None when credentials are not configured."""
    if not settings.remote_configured:
        return None
    return SupabaseAdapter(
        url=settings.SUPABASE_URL,
        api_key=settings.SUPABASE_ANON_KEY,
        timeout=settings.REMOTE_TIMEOUT,
        correlation_column=settings.REMOTE_CORRELATION_COLUMN,
    )


# ── Singleton instances (with injected dependencies) ──
_local_storage = LocalStorage(engine)
_store = SubstitutionStore(
    local_storage=_local_storage,
    remote=build_remote_adapter(),
    pacer=FixedDelayPacer(settings.BATCH_PAUSE_SECONDS),
    batch_size=settings.BATCH_SIZE,
    seed_defaults=settings.SEED_DEFAULT_DATA,
)


# ── FastAPI dependency functions ──
def get_store() -> SubstitutionStore:
    return _store
