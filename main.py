# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Substitute Tracker
==================
Keeps teachers, their weekly subjects, recorded absences (substitutions)
and substitute availability for a school. Data lives in a remote Supabase
backend when one is configured and reachable, and is always mirrored to
local storage so the service keeps working offline.

Port: 8000
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from substitutes.controllers import (
    availability_controller,
    backup_controller,
    subject_controller,
    substitution_controller,
    system_controller,
    teacher_controller,
)
from substitutes.core.config import settings
from substitutes.core.dependencies import get_store
from substitutes.core.logging import get_logger
from substitutes.middleware import MetricsMiddleware, RequestIDMiddleware

logger = get_logger(settings.SERVICE_NAME)


@asynccontextmanager
async def lifespan(application: FastAPI):
    """Choose the backend and load every collection before serving."""
    store = get_store()
    logger.info("%s v%s starting", settings.SERVICE_NAME, settings.SERVICE_VERSION)
    await store.init()
    logger.info("Store ready: backend=%s", store.backend_name)
    yield
    await store.close()
    logger.info("%s shutting down", settings.SERVICE_NAME)


app = FastAPI(
    title="Substitute Tracker",
    description="Teachers, subjects, substitutions and substitute availability.",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestIDMiddleware)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    req_id = getattr(request.state, "request_id", None)
    logger.exception("Unhandled exception", extra={"request_id": req_id})
    return JSONResponse(
        status_code=500,
        content={"error": "internal_server_error", "detail": str(exc), "request_id": req_id},
    )


app.include_router(system_controller.router)
app.include_router(teacher_controller.router)
app.include_router(subject_controller.router)
app.include_router(availability_controller.router)
app.include_router(substitution_controller.router)
app.include_router(backup_controller.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=settings.SERVICE_PORT)
