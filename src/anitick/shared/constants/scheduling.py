"""
Scheduling and Notification Constants

Timer names, periodic intervals and notification dedup windows.
"""

from .system import BASE_MINUTE


class TimerNames:
    """Named periodic triggers."""

    REFRESH_WATCHLIST = "refresh-watchlist"
    CHECK_NOTIFICATIONS = "check-notifications"


class TimerIntervals:
    """Periodic trigger intervals in minutes."""

    REFRESH_WATCHLIST = 30
    CHECK_NOTIFICATIONS = 5


class NotificationConfig:
    """Notification dedup and content constants."""

    QUIET_PERIOD = 30 * BASE_MINUTE
    LEDGER_RETENTION = 24 * 60 * BASE_MINUTE
    BEFORE_AIRING = 60 * BASE_MINUTE
    FALLBACK_ICON = "assets/icons/icon-128.png"
    FALLBACK_TITLE = "Anime"


class NotificationMessages:
    """User-facing notification text."""

    UPCOMING_TITLE = "Episode airing soon"
    UPCOMING_BODY = "{title} EP {episode} airs in {time_until}"
    RELEASE_TITLE = "New episode available!"
    RELEASE_BODY = "{title} EP {episode} is now available"
