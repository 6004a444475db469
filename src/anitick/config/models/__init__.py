"""Configuration models for AniTick."""

from .api_settings import AniListSettings, APISettings
from .app_settings import (
    AppSettings,
    LoggingSettings,
    NotificationSettings,
    SchedulerSettings,
    StorageSettings,
)
from .cache_settings import CacheSettings
from .settings import Settings

__all__ = [
    "APISettings",
    "AniListSettings",
    "AppSettings",
    "CacheSettings",
    "LoggingSettings",
    "NotificationSettings",
    "SchedulerSettings",
    "Settings",
    "StorageSettings",
]
