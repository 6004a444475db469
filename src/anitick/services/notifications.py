"""Episode notification scheduling.

Each evaluation looks at every tracked anime independently and decides
whether an "upcoming" or a "release" notification is due for its next
episode. A ledger of recently sent notifications keeps the same
(kind, anime, episode) from being announced twice within the quiet period.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from typing import Any, Callable

from anitick.shared.constants import NotificationConfig, NotificationMessages, StorageKeys
from anitick.shared.errors import ErrorContext, NotificationDisplayError
from anitick.shared.logging import log_operation_error, log_operation_success
from anitick.shared.models import (
    NotificationContent,
    NotificationKey,
    NotificationKind,
    SentNotification,
    TrackedAnime,
    UserSettings,
)
from anitick.shared.protocols import KeyValueStore, NotificationDisplay

logger = logging.getLogger(__name__)


def format_time_until(seconds: float) -> str:
    """Humanised countdown used in upcoming-episode messages.

    Examples:
        >>> format_time_until(45)
        'less than 1 minute'
        >>> format_time_until(1800)
        '30 minutes'
        >>> format_time_until(5400)
        '1h 30m'
        >>> format_time_until(90000)
        '1d 1h'
    """
    if seconds < 60:
        return "less than 1 minute"

    minutes = int(seconds // 60)
    if minutes < 60:
        return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"

    hours, remaining_minutes = divmod(minutes, 60)
    if hours < 24:
        if remaining_minutes:
            return f"{hours}h {remaining_minutes}m"
        return f"{hours} hour" if hours == 1 else f"{hours} hours"

    days, remaining_hours = divmod(hours, 24)
    if remaining_hours:
        return f"{days}d {remaining_hours}h"
    return f"{days} day" if days == 1 else f"{days} days"


class NotificationLedger:
    """Last-sent timestamps (epoch seconds) per notification key.

    Entries older than ``retention`` are pruned whenever a new entry is
    recorded; nothing else deletes them.
    """

    def __init__(
        self,
        quiet_period: float = NotificationConfig.QUIET_PERIOD,
        retention: float = NotificationConfig.LEDGER_RETENTION,
        entries: dict[str, float] | None = None,
    ) -> None:
        self.quiet_period = quiet_period
        self.retention = retention
        self._entries: dict[str, float] = dict(entries or {})

    def was_sent_recently(self, key: NotificationKey, now: float) -> bool:
        sent_at = self._entries.get(str(key))
        return sent_at is not None and now - sent_at < self.quiet_period

    def record(self, key: NotificationKey, now: float) -> None:
        self._prune(now)
        self._entries[str(key)] = now

    def discard(self, key: NotificationKey) -> bool:
        return self._entries.pop(str(key), None) is not None

    def _prune(self, now: float) -> None:
        expired = [k for k, sent_at in self._entries.items() if now - sent_at > self.retention]
        for k in expired:
            del self._entries[k]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: NotificationKey) -> bool:
        return str(key) in self._entries

    def to_dict(self) -> dict[str, float]:
        return dict(self._entries)

    @classmethod
    def from_dict(
        cls,
        raw: Any,
        quiet_period: float = NotificationConfig.QUIET_PERIOD,
        retention: float = NotificationConfig.LEDGER_RETENTION,
    ) -> NotificationLedger:
        """Rebuild a ledger from ``to_dict`` output, skipping malformed entries."""
        entries: dict[str, float] = {}
        if raw is not None and not isinstance(raw, dict):
            logger.warning("Ignoring persisted ledger of type %s", type(raw).__name__)
            raw = None
        for key, sent_at in (raw or {}).items():
            try:
                NotificationKey.parse(key)
                entries[key] = float(sent_at)
            except (TypeError, ValueError):
                logger.warning("Skipping malformed ledger entry: %s", key)
        return cls(quiet_period=quiet_period, retention=retention, entries=entries)

    def replace(self, other: NotificationLedger) -> None:
        """Adopt the entries of ``other`` (used after reloading from storage)."""
        self._entries = other.to_dict()


class NotificationScheduler:
    """Decides which episode notifications to show and shows them.

    With a ``store``, every key is claimed in the persisted ledger before
    it is displayed, so schedulers in different processes sharing one
    store never show the same notification twice. Without one the ledger
    lives in memory only.

    Args:
        display: Notification display capability
        ledger: Dedup ledger; its windows also apply to the persisted ledger
        clock: Wall-clock time source in epoch seconds, injectable for tests
        fallback_icon: Icon used when an anime has no cover image
        store: Key-value store holding the shared ledger
    """

    def __init__(
        self,
        display: NotificationDisplay,
        ledger: NotificationLedger | None = None,
        clock: Callable[[], float] = time.time,
        fallback_icon: str = NotificationConfig.FALLBACK_ICON,
        store: KeyValueStore | None = None,
    ) -> None:
        self.display = display
        self.ledger = ledger if ledger is not None else NotificationLedger()
        self._clock = clock
        self._fallback_icon = fallback_icon
        self._store = store

    async def evaluate(
        self,
        watchlist: Iterable[TrackedAnime],
        settings: UserSettings,
        now: float | None = None,
    ) -> list[SentNotification]:
        """Run one evaluation pass over ``watchlist``.

        A failure to show one notification is logged and does not stop
        the remaining anime from being evaluated. A notification that fails
        to show is released from the ledger, so the next pass tries again.

        Returns:
            Notifications shown during this pass
        """
        prefs = settings.notifications
        if not prefs.enabled:
            logger.debug("Notifications disabled, skipping evaluation")
            return []

        now = self._clock() if now is None else now
        sent: list[SentNotification] = []

        for anime in watchlist:
            airing = anime.next_airing_episode
            if not anime.notifications_enabled or airing is None:
                continue

            time_until = airing.airing_at - now

            if 0 < time_until <= prefs.before_airing:
                key = NotificationKey(NotificationKind.UPCOMING, anime.id, airing.episode)
                content = self._upcoming_content(anime, airing.episode, time_until)
            elif prefs.on_release and time_until <= 0:
                key = NotificationKey(NotificationKind.RELEASE, anime.id, airing.episode)
                content = self._release_content(anime, airing.episode)
            else:
                continue

            result = await self._emit(key, content, now)
            if result is not None:
                sent.append(result)

        log_operation_success(
            logger=logger,
            operation="evaluate_notifications",
            duration_ms=0,
            result_info={"sent": len(sent), "ledger_size": len(self.ledger)},
        )
        return sent

    async def _emit(
        self,
        key: NotificationKey,
        content: NotificationContent,
        now: float,
    ) -> SentNotification | None:
        if not await self._claim(key, now):
            return None

        try:
            handle = await self.display.create(str(key), content)
        except NotificationDisplayError as e:
            log_operation_error(
                logger=logger,
                error=e,
                operation="display_notification",
                additional_context=ErrorContext(
                    operation="display_notification",
                    additional_data={"notification_id": str(key)},
                ),
            )
            await self._release(key)
            return None
        except Exception:
            logger.exception("Unexpected error displaying notification %s", key)
            await self._release(key)
            return None

        logger.info("Notification sent: %s", key)
        return SentNotification(key=key, content=content, handle=handle)

    async def _claim(self, key: NotificationKey, now: float) -> bool:
        """Record ``key`` unless it was sent recently. Returns whether it was recorded."""

        def claim(ledger: NotificationLedger) -> bool:
            if ledger.was_sent_recently(key, now):
                return False
            ledger.record(key, now)
            return True

        return await self._with_ledger(claim)

    async def _release(self, key: NotificationKey) -> None:
        await self._with_ledger(lambda ledger: ledger.discard(key))

    async def _with_ledger(self, action: Callable[[NotificationLedger], bool]) -> bool:
        """Apply ``action`` to the current ledger; persist it when ``action`` reports a change."""
        if self._store is None:
            return action(self.ledger)

        outcome: dict[str, Any] = {"changed": False}

        def apply(raw: Any | None) -> Any | None:
            ledger = NotificationLedger.from_dict(
                raw,
                quiet_period=self.ledger.quiet_period,
                retention=self.ledger.retention,
            )
            outcome["changed"] = action(ledger)
            outcome["ledger"] = ledger
            return ledger.to_dict() if outcome["changed"] else raw

        await self._store.update(StorageKeys.NOTIFICATION_LEDGER, apply)
        self.ledger.replace(outcome["ledger"])
        return outcome["changed"]

    def _icon(self, anime: TrackedAnime) -> str:
        if anime.cover_image and anime.cover_image.medium:
            return anime.cover_image.medium
        return self._fallback_icon

    def _upcoming_content(
        self,
        anime: TrackedAnime,
        episode: int,
        time_until: float,
    ) -> NotificationContent:
        return NotificationContent(
            title=NotificationMessages.UPCOMING_TITLE,
            body=NotificationMessages.UPCOMING_BODY.format(
                title=anime.display_title,
                episode=episode,
                time_until=format_time_until(time_until),
            ),
            icon=self._icon(anime),
        )

    def _release_content(self, anime: TrackedAnime, episode: int) -> NotificationContent:
        return NotificationContent(
            title=NotificationMessages.RELEASE_TITLE,
            body=NotificationMessages.RELEASE_BODY.format(
                title=anime.display_title,
                episode=episode,
            ),
            icon=self._icon(anime),
        )
