"""
Application settings for linearfeed.

This module defines all configuration settings for linearfeed using Pydantic BaseSettings.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Main application settings using Pydantic BaseSettings."""

    # Database settings
    database_url: str = Field(
        default="sqlite:///./linearfeed.db",
        alias="DATABASE_URL",
    )
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    echo_sql: bool = Field(default=False, alias="ECHO_SQL")
    pool_size: int = Field(default=5, alias="DB_POOL_SIZE")
    max_overflow: int = Field(default=10, alias="DB_MAX_OVERFLOW")
    pool_timeout: int = Field(default=30, alias="DB_POOL_TIMEOUT")
    connect_timeout: int = Field(default=30, alias="DB_CONNECT_TIMEOUT")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    env: str = Field(default="dev", alias="ENV")  # dev|prod|test

    # Auto-scheduler
    tick_interval_seconds: float = Field(default=60.0, alias="SCHEDULER_TICK_SECONDS")
    horizon_minutes: int = Field(default=24 * 60, alias="SCHEDULER_HORIZON_MINUTES")
    retention_minutes: int = Field(default=24 * 60, alias="SCHEDULER_RETENTION_MINUTES")
    max_workers: int = Field(default=8, alias="SCHEDULER_MAX_WORKERS")
    backoff_base_seconds: float = Field(default=30.0, alias="SCHEDULER_BACKOFF_BASE_SECONDS")
    backoff_max_seconds: float = Field(default=1800.0, alias="SCHEDULER_BACKOFF_MAX_SECONDS")
    write_attempts: int = Field(default=3, alias="SCHEDULER_WRITE_ATTEMPTS")
    write_retry_seconds: float = Field(default=0.5, alias="SCHEDULER_WRITE_RETRY_SECONDS")

    # MRSS fetching
    feed_timeout_seconds: float = Field(default=10.0, alias="FEED_TIMEOUT_SECONDS")
    feed_user_agent: str = Field(default="linearfeed/0.1", alias="FEED_USER_AGENT")

    # HTTP server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8080, alias="PORT")

    model_config: SettingsConfigDict = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


def _resolve_env_file() -> str | None:
    # 1) Explicit override
    explicit = os.getenv("LINEARFEED_ENV_FILE")
    if explicit and Path(explicit).is_file():
        return explicit

    # 2) CWD .env
    cwd_env = Path.cwd() / ".env"
    if cwd_env.is_file():
        return str(cwd_env)

    # 3) Walk up from this file to find nearest .env
    here = Path(__file__).resolve()
    for parent in here.parents:
        candidate = parent / ".env"
        if candidate.is_file():
            return str(candidate)
    return None


# Global settings instance (load from best-effort .env discovery)
_env_file = _resolve_env_file()
settings = Settings(_env_file=_env_file) if _env_file else Settings()  # type: ignore[call-arg]
