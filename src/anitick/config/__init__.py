"""Configuration package for AniTick."""

from .loader import get_config, load_settings, reload_config
from .models import (
    AniListSettings,
    APISettings,
    CacheSettings,
    LoggingSettings,
    NotificationSettings,
    SchedulerSettings,
    Settings,
    StorageSettings,
)

__all__ = [
    "APISettings",
    "AniListSettings",
    "CacheSettings",
    "LoggingSettings",
    "NotificationSettings",
    "SchedulerSettings",
    "Settings",
    "StorageSettings",
    "get_config",
    "load_settings",
    "reload_config",
]
