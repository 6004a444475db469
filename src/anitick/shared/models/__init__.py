"""Typed records shared across AniTick layers."""

from .anime import (
    AiringStatus,
    AniListModel,
    AnimeDetails,
    AnimeStatusUpdate,
    AnimeSummary,
    CoverImage,
    FuzzyDate,
    MediaTitle,
    NextAiringEpisode,
    TrackedAnime,
)
from .notifications import (
    NotificationContent,
    NotificationKey,
    NotificationKind,
    SentNotification,
)
from .user_settings import (
    DisplayPreferences,
    NotificationPreferences,
    SearchPreferences,
    UpdatePreferences,
    UserSettings,
)

__all__ = [
    "AiringStatus",
    "AniListModel",
    "AnimeDetails",
    "AnimeStatusUpdate",
    "AnimeSummary",
    "CoverImage",
    "DisplayPreferences",
    "FuzzyDate",
    "MediaTitle",
    "NextAiringEpisode",
    "NotificationContent",
    "NotificationKey",
    "NotificationKind",
    "NotificationPreferences",
    "SearchPreferences",
    "SentNotification",
    "TrackedAnime",
    "UpdatePreferences",
    "UserSettings",
]
