# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""SQLAlchemy engine for local fallback storage."""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from substitutes.core.config import settings


def build_engine(url: str) -> Engine:
    # Store calls may run on the threadpool as well as the event loop thread.
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


engine = build_engine(settings.LOCAL_STORAGE_URL)
