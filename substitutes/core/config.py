# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Core configuration — all env-driven.
An empty SUPABASE_URL or SUPABASE_ANON_KEY means the store runs local-only.
"""

import os


def _optional_float(raw: str) -> float | None:
    raw = raw.strip()
    return float(raw) if raw else None


class Settings:
    """Application settings loaded from environment variables."""

    SERVICE_NAME: str = os.getenv("SERVICE_NAME", "substitute-tracker")
    SERVICE_VERSION: str = os.getenv("SERVICE_VERSION", "1.0.0")
    SERVICE_PORT: int = int(os.getenv("SERVICE_PORT", "8000"))

    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "").strip().rstrip("/")
    SUPABASE_ANON_KEY: str = os.getenv("SUPABASE_ANON_KEY", "").strip()
    # No timeout unless the operator sets one.
    REMOTE_TIMEOUT: float | None = _optional_float(os.getenv("REMOTE_TIMEOUT", ""))
    REMOTE_CORRELATION_COLUMN: str = os.getenv("REMOTE_CORRELATION_COLUMN", "client_ref")

    LOCAL_STORAGE_URL: str = os.getenv("LOCAL_STORAGE_URL", "sqlite:///substitutes.db")

    BATCH_SIZE: int = int(os.getenv("BATCH_SIZE", "50"))
    BATCH_PAUSE_SECONDS: float = float(os.getenv("BATCH_PAUSE_SECONDS", "0.1"))

    CORS_ORIGINS: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    SEED_DEFAULT_DATA: bool = (
        os.getenv("SEED_DEFAULT_DATA", "true").lower() == "true"
    )

    @property
    def remote_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_ANON_KEY)


settings = Settings()
