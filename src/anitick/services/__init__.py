"""AniTick core services.

Rate limiting, response caching, the AniList client, the watchlist and
settings stores, notification scheduling and the background facade.
"""

from .anilist import AniListClient
from .background import BackgroundService, CommandResponse, CommandType
from .notifications import NotificationLedger, NotificationScheduler, format_time_until
from .rate_limiter import SlidingWindowRateLimiter
from .response_cache import CacheEntry, ResponseCache
from .retry import retry_with_backoff
from .settings_store import UserSettingsStore
from .watchlist_store import WatchlistStore

__all__ = [
    "AniListClient",
    "BackgroundService",
    "CacheEntry",
    "CommandResponse",
    "CommandType",
    "NotificationLedger",
    "NotificationScheduler",
    "ResponseCache",
    "SlidingWindowRateLimiter",
    "UserSettingsStore",
    "WatchlistStore",
    "format_time_until",
    "retry_with_backoff",
]
