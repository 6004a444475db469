"""Cache configuration model."""

from __future__ import annotations

from pydantic import BaseModel, Field

from anitick.shared.constants import CacheTTL


class CacheSettings(BaseModel):
    """Response cache TTLs in seconds."""

    details_ttl: float = Field(
        default=CacheTTL.ANIME_DETAILS,
        gt=0,
        description="TTL for single-anime detail responses",
    )
    persist: bool = Field(
        default=True,
        description="Persist cached detail responses between runs",
    )


__all__ = ["CacheSettings"]
