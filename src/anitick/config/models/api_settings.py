"""API configuration models (AniList).

This module contains configuration models for the external catalog API:
endpoint, rate limiting, batching and retry behaviour.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from anitick.shared.constants import AniListConfig


class AniListSettings(BaseModel):
    """AniList API configuration.

    Rate limiting is expressed as a sliding window: at most
    ``max_requests`` requests in any trailing ``window_seconds``.
    """

    url: str = Field(default=AniListConfig.API_URL, description="GraphQL endpoint")
    timeout: float = Field(
        default=AniListConfig.REQUEST_TIMEOUT,
        gt=0,
        description="Request timeout in seconds",
    )

    # Rate limiting settings
    max_requests: int = Field(
        default=AniListConfig.MAX_REQUESTS,
        gt=0,
        description="Maximum requests per sliding window",
    )
    window_seconds: float = Field(
        default=AniListConfig.TIME_WINDOW,
        gt=0,
        description="Sliding window length in seconds",
    )
    rate_limit_wait: float = Field(
        default=AniListConfig.RATE_LIMIT_WAIT,
        ge=0,
        description="Fixed wait after HTTP 429 before re-issuing the request",
    )
    max_rate_limit_retries: int = Field(
        default=AniListConfig.MAX_RATE_LIMIT_RETRIES,
        ge=1,
        description="Maximum attempts per request while throttled",
    )

    # Batching settings
    batch_size: int = Field(
        default=AniListConfig.MAX_BATCH_SIZE,
        gt=0,
        le=AniListConfig.MAX_BATCH_SIZE,
        description="Ids per bulk refresh request",
    )
    search_page_size: int = Field(
        default=AniListConfig.SEARCH_PAGE_SIZE,
        gt=0,
        description="Results per search request",
    )

    # Retry settings for the explicit backoff helper
    retry_attempts: int = Field(
        default=AniListConfig.RETRY_ATTEMPTS,
        ge=1,
        description="Attempts for transient network failures",
    )
    retry_base_delay: float = Field(
        default=AniListConfig.RETRY_BASE_DELAY,
        ge=0,
        description="Initial backoff delay in seconds",
    )
    retry_max_delay: float = Field(
        default=AniListConfig.RETRY_MAX_DELAY,
        ge=0,
        description="Backoff delay cap in seconds",
    )


class APISettings(BaseModel):
    """API configuration container."""

    anilist: AniListSettings = Field(
        default_factory=AniListSettings,
        description="AniList API configuration",
    )


__all__ = [
    "APISettings",
    "AniListSettings",
]
