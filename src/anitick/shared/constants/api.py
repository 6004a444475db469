"""
AniList API Constants

Endpoint, rate limit and batching constants for the AniList GraphQL API.
"""

from .system import BASE_MINUTE, BASE_SECOND


class AniListConfig:
    """AniList API configuration constants."""

    API_URL = "https://graphql.anilist.co"

    # AniList allows 90 requests per rolling minute
    MAX_REQUESTS = 90
    TIME_WINDOW = 1 * BASE_MINUTE

    # id_in lookups are capped at 50 ids per page
    MAX_BATCH_SIZE = 50
    SEARCH_PAGE_SIZE = 10

    # Fixed wait after an HTTP 429 before re-issuing the same request
    RATE_LIMIT_WAIT = 1 * BASE_MINUTE
    MAX_RATE_LIMIT_RETRIES = 5

    REQUEST_TIMEOUT = 30 * BASE_SECOND

    # Explicit exponential backoff helper defaults
    RETRY_ATTEMPTS = 3
    RETRY_BASE_DELAY = 1.0 * BASE_SECOND
    RETRY_MAX_DELAY = 30 * BASE_SECOND


class CacheTTL:
    """Cache time-to-live values in seconds."""

    ANIME_DETAILS = 24 * 60 * BASE_MINUTE


class CacheKeys:
    """Cache key prefixes."""

    ANIME_DETAILS_PREFIX = "anime_"

    @staticmethod
    def anime_details(media_id: int) -> str:
        """Cache key for a single anime detail record."""
        return f"{CacheKeys.ANIME_DETAILS_PREFIX}{media_id}"
