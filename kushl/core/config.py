"""
Configuration helpers for the KushL backend.

Routers, services and storage adapters read settings from here instead of
fetching os.environ directly.
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
import os

DEFAULT_STORAGE_PATH = Path(__file__).resolve().parents[2] / "data" / "storage.json"


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    storage_backend: str
    storage_path: str
    database_url: str
    session_ttl_seconds: int
    log_level: str
    timezone: str
    key_prefix: str


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    backend = (os.getenv("STORAGE_BACKEND") or "json").strip().lower()
    if backend not in {"json", "sql", "memory"}:
        backend = "json"

    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        storage_backend=backend,
        storage_path=os.getenv("STORAGE_PATH", str(DEFAULT_STORAGE_PATH)),
        database_url=os.getenv("DATABASE_URL", ""),
        session_ttl_seconds=_int(os.getenv("SESSION_TTL_SECONDS", "86400"), 86400),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        timezone=os.getenv("APP_TIMEZONE", "UTC"),
        key_prefix="kushl_",
    )
