"""
coursecore/config/settings.py
Runtime configuration

All settings are loaded from environment variables (a `.env` file is read by
the app factory and the CLI before settings are built).
"""
import os
from typing import List, Optional


DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./coursecore.db"


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


def get_int_env(key: str, default: int) -> int:
    """Get an integer value from environment variable, falling back on garbage."""
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def get_list_env(key: str) -> List[str]:
    """Get a comma separated list from environment variable."""
    return [item.strip() for item in os.getenv(key, "").split(",") if item.strip()]


class Settings:
    """
    Settings for the curriculum/progress engine.

    Retry knobs feed the single ResilientExecutor shared by every service:
    - STORE_RETRY_MAX_ATTEMPTS: attempt budget for ordinary operations
    - STORE_RETRY_DESTRUCTIVE_ATTEMPTS: attempt budget for soft-deletes and cleanup batches
    - STORE_RETRY_BASE_DELAY_MS / STORE_RETRY_MAX_DELAY_MS: exponential backoff bounds
    """

    def __init__(self, database_url: Optional[str] = None):
        self.database_url: str = database_url or os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL
        self.environment: str = os.getenv("ENVIRONMENT", "development")
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
        self.allowed_origins: List[str] = get_list_env("ALLOWED_ORIGINS")
        self.auto_create_tables: bool = get_bool_env("AUTO_CREATE_TABLES", True)

        self.store_max_attempts: int = max(1, get_int_env("STORE_RETRY_MAX_ATTEMPTS", 5))
        self.store_destructive_attempts: int = max(1, get_int_env("STORE_RETRY_DESTRUCTIVE_ATTEMPTS", 3))
        self.store_base_delay_ms: int = max(0, get_int_env("STORE_RETRY_BASE_DELAY_MS", 500))
        self.store_max_delay_ms: int = max(0, get_int_env("STORE_RETRY_MAX_DELAY_MS", 10000))

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    def to_dict(self) -> dict:
        """Non-secret view of the configuration for diagnostics."""
        return {
            "environment": self.environment,
            "log_level": self.log_level,
            "database_backend": self.database_url.split(":", 1)[0],
            "store_max_attempts": self.store_max_attempts,
            "store_destructive_attempts": self.store_destructive_attempts,
            "store_base_delay_ms": self.store_base_delay_ms,
            "store_max_delay_ms": self.store_max_delay_ms,
        }


def load_settings(database_url: Optional[str] = None) -> Settings:
    """Build settings from the current environment."""
    return Settings(database_url=database_url)
