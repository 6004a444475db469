"""AniList media models.

Pydantic models for the AniList responses the tracker consumes and for the
tracked watchlist entries it persists. Field names are snake_case in Python
and camelCase on the wire and in storage.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from anitick.shared.constants import NotificationConfig


class AniListModel(BaseModel):
    """Base model using AniList's camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_payload(self) -> dict[str, Any]:
        """Serialize with camelCase keys into JSON-compatible primitives."""
        return self.model_dump(by_alias=True, mode="json")


class AiringStatus(str, Enum):
    """AniList media status values."""

    RELEASING = "RELEASING"
    FINISHED = "FINISHED"
    NOT_YET_RELEASED = "NOT_YET_RELEASED"
    CANCELLED = "CANCELLED"
    HIATUS = "HIATUS"


class MediaTitle(AniListModel):
    romaji: str | None = None
    english: str | None = None
    native: str | None = None


class CoverImage(AniListModel):
    extra_large: str | None = None
    large: str | None = None
    medium: str | None = None


class FuzzyDate(AniListModel):
    year: int | None = None
    month: int | None = None
    day: int | None = None


class NextAiringEpisode(AniListModel):
    """Next scheduled episode; ``airing_at`` is in epoch seconds."""

    episode: int
    airing_at: int
    time_until_airing: int | None = None


class StreamingEpisode(AniListModel):
    title: str | None = None
    thumbnail: str | None = None
    url: str | None = None


class ExternalLink(AniListModel):
    url: str | None = None
    site: str | None = None


def _display_title(title: MediaTitle) -> str:
    return title.romaji or title.english or NotificationConfig.FALLBACK_TITLE


class AnimeSummary(AniListModel):
    """Single search result row."""

    id: int
    title: MediaTitle = Field(default_factory=MediaTitle)
    cover_image: CoverImage | None = None
    status: AiringStatus | None = None
    next_airing_episode: NextAiringEpisode | None = None
    episodes: int | None = None
    season: str | None = None
    season_year: int | None = None
    genres: list[str] = Field(default_factory=list)
    average_score: int | None = None

    @property
    def display_title(self) -> str:
        return _display_title(self.title)


class AnimeDetails(AnimeSummary):
    """Full detail record for a single anime."""

    description: str | None = None
    banner_image: str | None = None
    airing_schedule: list[NextAiringEpisode] = Field(default_factory=list)
    streaming_episodes: list[StreamingEpisode] = Field(default_factory=list)
    external_links: list[ExternalLink] = Field(default_factory=list)
    start_date: FuzzyDate | None = None
    end_date: FuzzyDate | None = None
    studios: list[str] = Field(default_factory=list)

    @field_validator("airing_schedule", mode="before")
    @classmethod
    def _flatten_schedule(cls, value: Any) -> Any:
        # AniList wraps connections as {"nodes": [...]}
        if isinstance(value, dict):
            return value.get("nodes") or []
        return value if value is not None else []

    @field_validator("studios", mode="before")
    @classmethod
    def _flatten_studios(cls, value: Any) -> Any:
        if isinstance(value, dict):
            value = value.get("nodes") or []
        if value is None:
            return []
        return [node["name"] if isinstance(node, dict) else node for node in value]

    @field_validator("genres", "streaming_episodes", "external_links", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class AnimeStatusUpdate(AniListModel):
    """Partial record returned by a bulk refresh.

    Only the fields a refresh is allowed to overlay on a tracked entry.
    """

    id: int
    status: AiringStatus | None = None
    episodes: int | None = None
    next_airing_episode: NextAiringEpisode | None = None


class TrackedAnime(AniListModel):
    """A watchlist entry.

    ``added_at`` and ``last_checked`` are epoch milliseconds. ``added_at``
    never changes after creation.
    """

    id: int
    title: MediaTitle = Field(default_factory=MediaTitle)
    status: AiringStatus | None = None
    episodes: int | None = None
    next_airing_episode: NextAiringEpisode | None = None
    cover_image: CoverImage | None = None
    season: str | None = None
    season_year: int | None = None
    genres: list[str] = Field(default_factory=list)
    average_score: int | None = None
    added_at: int
    last_checked: int
    notifications_enabled: bool = True

    @property
    def display_title(self) -> str:
        return _display_title(self.title)

    def with_update(self, update: AnimeStatusUpdate, now_ms: int) -> TrackedAnime:
        """Return a copy with the refreshable fields overlaid."""
        return self.model_copy(
            update={
                "status": update.status,
                "episodes": update.episodes,
                "next_airing_episode": update.next_airing_episode,
                "last_checked": now_ms,
            },
        )
