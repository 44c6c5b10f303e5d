"""Auto-scheduler configuration.

Tick interval, horizon length and retention window have no fixed contract;
they are explicit parameters with defaults taken from the environment
(see :mod:`linearfeed.infra.settings`):

    SCHEDULER_TICK_SECONDS          tick interval (60)
    SCHEDULER_HORIZON_MINUTES       default rolling horizon (1440)
    SCHEDULER_RETENTION_MINUTES     how long past events stay Planned (1440)
    SCHEDULER_MAX_WORKERS           worker-pool size (8)
    SCHEDULER_BACKOFF_BASE_SECONDS  first Starved retry delay (30)
    SCHEDULER_BACKOFF_MAX_SECONDS   Starved retry delay cap (1800)
    SCHEDULER_WRITE_ATTEMPTS        bounded write retries before Failed (3)
    SCHEDULER_WRITE_RETRY_SECONDS   delay step between write retries (0.5)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..infra.settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SchedulerConfig:
    """Immutable scheduler parameters; the core never reads global settings."""

    tick_interval_seconds: float = 60.0
    horizon_minutes: int = 24 * 60
    retention_minutes: int = 24 * 60
    max_workers: int = 8
    backoff_base_seconds: float = 30.0
    backoff_max_seconds: float = 1800.0
    write_attempts: int = 3
    write_retry_seconds: float = 0.5

    def __post_init__(self) -> None:
        if self.tick_interval_seconds <= 0:
            raise ValueError("tick_interval_seconds must be greater than zero")
        if self.horizon_minutes <= 0:
            raise ValueError("horizon_minutes must be greater than zero")
        if self.retention_minutes < 0:
            raise ValueError("retention_minutes must be non-negative")
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if self.backoff_base_seconds <= 0 or self.backoff_max_seconds < self.backoff_base_seconds:
            raise ValueError("backoff must satisfy 0 < base <= max")
        if self.write_attempts < 1:
            raise ValueError("write_attempts must be at least 1")

    @property
    def horizon_ms(self) -> int:
        return self.horizon_minutes * 60_000

    @property
    def retention_ms(self) -> int:
        return self.retention_minutes * 60_000

    def backoff_seconds(self, streak: int) -> float:
        """Delay before retry number ``streak`` (1-based) of a Starved channel."""
        if streak < 1:
            return 0.0
        exponent = min(streak - 1, 32)
        return min(self.backoff_base_seconds * (2 ** exponent), self.backoff_max_seconds)

    @classmethod
    def from_settings(cls, settings: Settings) -> SchedulerConfig:
        config = cls(
            tick_interval_seconds=settings.tick_interval_seconds,
            horizon_minutes=settings.horizon_minutes,
            retention_minutes=settings.retention_minutes,
            max_workers=settings.max_workers,
            backoff_base_seconds=settings.backoff_base_seconds,
            backoff_max_seconds=settings.backoff_max_seconds,
            write_attempts=settings.write_attempts,
            write_retry_seconds=settings.write_retry_seconds,
        )
        logger.info(
            "Scheduler config: tick=%ss horizon=%dmin retention=%dmin workers=%d",
            config.tick_interval_seconds, config.horizon_minutes,
            config.retention_minutes, config.max_workers,
        )
        return config
