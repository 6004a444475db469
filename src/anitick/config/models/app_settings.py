"""Application, logging, storage and scheduling configuration models."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from anitick.shared.constants import (
    Application,
    FileSystem,
    NotificationConfig,
    StorageLock,
    TimerIntervals,
)


class AppSettings(BaseModel):
    """Application identity."""

    name: str = Field(default=Application.NAME, description="Application name")
    version: str = Field(default=Application.VERSION, description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Logging level")
    file: str | None = Field(default=None, description="Optional JSON log file path")
    rich_console: bool = Field(default=True, description="Use rich console output")


class StorageSettings(BaseModel):
    """Persistent key-value store configuration."""

    path: Path = Field(
        default_factory=FileSystem.default_data_path,
        description="JSON document holding watchlist, settings and cache",
    )
    lock_timeout: float = Field(
        default=StorageLock.TIMEOUT,
        gt=0,
        description="Seconds to wait for the cross-process lock on the document",
    )


class SchedulerSettings(BaseModel):
    """Notification timer interval in minutes.

    The refresh period is the user setting ``updates.frequency``.
    """

    notification_interval: float = Field(default=TimerIntervals.CHECK_NOTIFICATIONS, gt=0)


class NotificationSettings(BaseModel):
    """Notification dedup windows in seconds."""

    quiet_period: float = Field(default=NotificationConfig.QUIET_PERIOD, gt=0)
    ledger_retention: float = Field(default=NotificationConfig.LEDGER_RETENTION, gt=0)
    fallback_icon: str = Field(default=NotificationConfig.FALLBACK_ICON)


__all__ = [
    "AppSettings",
    "LoggingSettings",
    "NotificationSettings",
    "SchedulerSettings",
    "StorageSettings",
]
