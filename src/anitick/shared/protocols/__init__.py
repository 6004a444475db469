"""Capability protocols used by the AniTick core."""

from .capabilities import (
    KeyValueStore,
    NotificationDisplay,
    TimerCallback,
    TimerScheduler,
    Transport,
    TransportResponse,
)

__all__ = [
    "KeyValueStore",
    "NotificationDisplay",
    "TimerCallback",
    "TimerScheduler",
    "Transport",
    "TransportResponse",
]
