"""
Storage Key Constants

Keys of the persisted key-value document.
"""


class StorageKeys:
    """Persisted storage keys."""

    WATCHLIST = "watchlist"
    SETTINGS = "settings"
    CACHE = "cache"
    LAST_UPDATE = "lastUpdate"
    NOTIFICATION_LEDGER = "notificationLedger"


class StorageLock:
    """Cross-process lock guarding read-modify-write of the document."""

    SUFFIX = ".lock"
    TIMEOUT = 10.0  # seconds
