from datetime import date
from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "development", "production"] = "local"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800
    SLOW_QUERY_THRESHOLD_MS: int = 200

    # Redis (ARQ background jobs)
    REDIS_URL: str = "redis://localhost:6379/0"

    # Reporting window. STATS_WINDOW_START/END override the calendar year.
    STATS_YEAR: int = 2025
    STATS_WINDOW_START: Optional[date] = None
    STATS_WINDOW_END: Optional[date] = None

    # In-process caches and materialized-view staleness
    PEER_STATS_CACHE_TTL_SECONDS: int = 60 * 60
    GLOBAL_STATS_CACHE_TTL_SECONDS: int = 60 * 60
    SNAPSHOT_MAX_AGE_HOURS: int = 24

    # Coach directory only lists coaches with at least this many sessions
    COACH_LIST_MIN_SESSIONS: int = 10

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str]) -> str:
        if isinstance(v, str):
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+psycopg://", 1)
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
