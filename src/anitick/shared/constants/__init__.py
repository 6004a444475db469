"""
AniTick Constants Module

Centralized constants for the AniTick application. All magic values are
defined here to keep a single source of truth.
"""

from .api import AniListConfig, CacheKeys, CacheTTL
from .cli import CLICommands, CLIHelp, CLIMessages
from .http_codes import ContentTypes, HTTPHeaders, HTTPStatusCodes
from .scheduling import (
    NotificationConfig,
    NotificationMessages,
    TimerIntervals,
    TimerNames,
)
from .storage import StorageKeys, StorageLock
from .system import (
    BASE_MINUTE,
    BASE_SECOND,
    MILLISECONDS_PER_SECOND,
    Application,
    FileSystem,
)

__all__ = [
    "BASE_MINUTE",
    "BASE_SECOND",
    "MILLISECONDS_PER_SECOND",
    "AniListConfig",
    "Application",
    "CLICommands",
    "CLIHelp",
    "CLIMessages",
    "CacheKeys",
    "CacheTTL",
    "ContentTypes",
    "FileSystem",
    "HTTPHeaders",
    "HTTPStatusCodes",
    "NotificationConfig",
    "NotificationMessages",
    "StorageKeys",
    "StorageLock",
    "TimerIntervals",
    "TimerNames",
]
