"""Notification records.

Frozen dataclasses for the values passed between the notification
scheduler and the display capability.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class NotificationKind(str, Enum):
    """Kinds of episode notifications."""

    UPCOMING = "upcoming"
    RELEASE = "release"


@dataclass(frozen=True)
class NotificationKey:
    """Dedup key: one notification per (kind, anime, episode)."""

    kind: NotificationKind
    media_id: int
    episode: int

    def __str__(self) -> str:
        return f"{self.kind.value}_{self.media_id}_{self.episode}"

    @classmethod
    def parse(cls, raw: str) -> NotificationKey:
        """Inverse of ``str(key)``.

        Raises:
            ValueError: If ``raw`` is not a ``<kind>_<id>_<episode>`` string
        """
        kind, media_id, episode = raw.split("_")
        return cls(NotificationKind(kind), int(media_id), int(episode))


@dataclass(frozen=True)
class NotificationContent:
    """Payload handed to the notification display."""

    title: str
    body: str
    icon: str


@dataclass(frozen=True)
class SentNotification:
    """A notification that was displayed during an evaluation cycle."""

    key: NotificationKey
    content: NotificationContent
    handle: str
