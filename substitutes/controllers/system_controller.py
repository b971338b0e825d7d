# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: System endpoints — health, readiness, metrics.
Pure HTTP layer — no business logic.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from substitutes.core.config import settings
from substitutes.core.dependencies import get_store
from substitutes.services.store import SubstitutionStore

router = APIRouter(tags=["System"])


@router.get("/health")
def health_check(store: SubstitutionStore = Depends(get_store)):
    """Liveness probe for Docker and orchestration."""
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "teachers_count": len(store.teachers),
        "substitutions_count": len(store.substitutions),
    }


@router.get("/health/ready")
def readiness_check(store: SubstitutionStore = Depends(get_store)):
    """Readiness probe — data loaded and backend chosen."""
    return {
        "status": "ready" if store.data_loaded else "loading",
        "service": settings.SERVICE_NAME,
        "backend": store.backend_name,
        "use_remote": store.use_remote,
        "data_loaded": store.data_loaded,
    }


@router.get("/metrics")
def prometheus_metrics():
    """Expose Prometheus metrics in OpenMetrics format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
