"""
Configuration helpers for the health backend.

Routers and services read settings through get_settings() so that nothing
fetches os.environ directly.
"""

from dataclasses import dataclass
from functools import lru_cache
import os


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    database_url: str
    kv_url: str
    kv_socket_timeout: float
    verification_code_ttl_seconds: int
    cache_item_key: str
    log_level: str


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _float(value: str, default: float = 0.0) -> float:
        try:
            return float(value)
        except (TypeError, ValueError):
            return default

    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./health.db"),
        kv_url=(os.getenv("KV_URL") or "").strip(),
        kv_socket_timeout=_float(os.getenv("KV_SOCKET_TIMEOUT", "5"), 5.0),
        verification_code_ttl_seconds=_int(os.getenv("VERIFICATION_CODE_TTL_SECONDS", "900"), 900),
        cache_item_key=os.getenv("CACHE_ITEM_KEY", "item"),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
