# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
HTTP Middleware — request ID propagation, access log and Prometheus metrics.
"""

import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from substitutes.core.logging import get_logger
from substitutes.metrics import REQUEST_COUNT, REQUEST_LATENCY, HTTP_ERRORS

logger = get_logger(__name__)

KNOWN_SEGMENTS: frozenset[str] = frozenset({
    "api", "v1", "teachers", "subjects", "substitutions", "availability",
    "substitutes", "range", "batch", "stats", "lookup", "backup", "export",
    "import", "migrate", "health", "metrics", "ready",
})

UNTRACKED_PATHS: frozenset[str] = frozenset({
    "/health", "/health/ready", "/metrics", "/openapi.json", "/docs", "/redoc",
})


def normalize_path(path: str) -> str:
    """Collapse record ids so each route maps to one metrics label."""
    parts = [p for p in path.strip("/").split("/") if p]
    if not parts:
        return "/"
    return "/" + "/".join(p if p in KNOWN_SEGMENTS else "{id}" for p in parts)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Propagate or generate X-Request-ID and log each request with it."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        if request.url.path not in UNTRACKED_PATHS:
            logger.info(
                "%s %s -> %d", request.method, request.url.path, response.status_code,
                extra={"request_id": request_id},
            )
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Per-route request count, latency and error count."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start

        if request.url.path in UNTRACKED_PATHS:
            return response

        endpoint = normalize_path(request.url.path)
        status = str(response.status_code)
        REQUEST_COUNT.labels(method=request.method, endpoint=endpoint, status=status).inc()
        REQUEST_LATENCY.labels(method=request.method, endpoint=endpoint).observe(elapsed)
        if response.status_code >= 400:
            HTTP_ERRORS.labels(method=request.method, endpoint=endpoint, status=status).inc()
        return response
