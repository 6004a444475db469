"""Persisted watchlist.

The watchlist is an ordered list of ``TrackedAnime`` entries stored under a
single key. Insertion order is the canonical order; the anime id is the
only uniqueness key. Every mutation is one atomic read-modify-write through
``KeyValueStore.update``, so a refresh merge and a manual add or remove
never lose each other's changes, even from different processes.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import Any, Callable, Optional

from pydantic import ValidationError

from anitick.shared.constants import MILLISECONDS_PER_SECOND, StorageKeys
from anitick.shared.errors import ErrorCode, create_storage_error
from anitick.shared.models import AnimeStatusUpdate, AnimeSummary, TrackedAnime
from anitick.shared.protocols import KeyValueStore

logger = logging.getLogger(__name__)

# Returns the new entry list, or None to leave the stored list as it is
Change = Callable[[list[TrackedAnime]], Optional[list[TrackedAnime]]]


def epoch_ms(clock: Callable[[], float] = time.time) -> int:
    return int(clock() * MILLISECONDS_PER_SECOND)


class WatchlistStore:
    """Watchlist backed by a key-value store.

    Args:
        store: Persistence capability
        clock: Wall-clock time source in epoch seconds, injectable for tests
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._clock = clock

    async def entries(self) -> list[TrackedAnime]:
        """Tracked anime in insertion order."""
        return _parse(await self._store.get(StorageKeys.WATCHLIST))

    async def get(self, media_id: int) -> TrackedAnime | None:
        for item in await self.entries():
            if item.id == media_id:
                return item
        return None

    async def add(self, anime: AnimeSummary) -> TrackedAnime:
        """Start tracking ``anime``.

        Adding an id that is already tracked changes nothing and returns
        the existing entry.

        Args:
            anime: Canonical catalog data, typically from search or details

        Returns:
            The tracked entry
        """
        now_ms = epoch_ms(self._clock)
        outcome: dict[str, Any] = {}

        def change(items: list[TrackedAnime]) -> list[TrackedAnime] | None:
            for existing in items:
                if existing.id == anime.id:
                    outcome["entry"] = existing
                    return None
            entry = TrackedAnime(
                id=anime.id,
                title=anime.title,
                status=anime.status,
                episodes=anime.episodes,
                next_airing_episode=anime.next_airing_episode,
                cover_image=anime.cover_image,
                season=anime.season,
                season_year=anime.season_year,
                genres=list(anime.genres),
                average_score=anime.average_score,
                added_at=now_ms,
                last_checked=now_ms,
            )
            outcome["entry"] = entry
            outcome["added"] = True
            return [*items, entry]

        await self._mutate(change)

        entry: TrackedAnime = outcome["entry"]
        if outcome.get("added"):
            logger.info("Added %s (%d) to watchlist", entry.display_title, entry.id)
        else:
            logger.debug("Anime %d already tracked", anime.id)
        return entry

    async def remove(self, media_id: int) -> bool:
        """Stop tracking ``media_id``. Returns whether an entry was removed."""
        outcome = {"removed": False}

        def change(items: list[TrackedAnime]) -> list[TrackedAnime] | None:
            remaining = [item for item in items if item.id != media_id]
            if len(remaining) == len(items):
                return None
            outcome["removed"] = True
            return remaining

        await self._mutate(change)

        if outcome["removed"]:
            logger.info("Removed %d from watchlist", media_id)
        return outcome["removed"]

    async def merge_refresh(self, updates: Mapping[int, AnimeStatusUpdate]) -> int:
        """Overlay refreshed airing data onto tracked entries.

        Only status, episode count and next airing episode change, and
        ``last_checked`` advances. Tracked entries missing from ``updates``
        stay as they are; ids in ``updates`` that are not tracked are
        ignored. Entries are never created, removed or reordered.

        The overlay is applied to the list as stored at write time, so
        entries added or removed since the refresh started are preserved.

        Returns:
            Number of entries updated
        """
        if not updates:
            return 0

        now_ms = epoch_ms(self._clock)
        outcome = {"count": 0, "tracked": 0}

        def change(items: list[TrackedAnime]) -> list[TrackedAnime] | None:
            outcome["tracked"] = len(items)
            merged: list[TrackedAnime] = []
            count = 0
            for item in items:
                update = updates.get(item.id)
                if update is None:
                    merged.append(item)
                    continue
                merged.append(item.with_update(update, now_ms))
                count += 1
            outcome["count"] = count
            return merged if count else None

        await self._mutate(change)

        logger.debug("Merged refresh data into %d of %d entries", outcome["count"], outcome["tracked"])
        return outcome["count"]

    async def set_notifications_enabled(self, media_id: int, enabled: bool) -> TrackedAnime | None:
        """Toggle notifications for one entry.

        Returns:
            The updated entry, or None if ``media_id`` is not tracked
        """
        outcome: dict[str, TrackedAnime] = {}

        def change(items: list[TrackedAnime]) -> list[TrackedAnime] | None:
            for index, item in enumerate(items):
                if item.id == media_id:
                    updated = item.model_copy(update={"notifications_enabled": enabled})
                    outcome["entry"] = updated
                    return [*items[:index], updated, *items[index + 1 :]]
            return None

        await self._mutate(change)

        entry = outcome.get("entry")
        if entry is not None:
            logger.info(
                "Notifications %s for %d",
                "enabled" if enabled else "disabled",
                media_id,
            )
        return entry

    async def ids(self) -> list[int]:
        return [item.id for item in await self.entries()]

    async def _mutate(self, change: Change) -> None:
        def apply(raw: Any | None) -> Any | None:
            changed = change(_parse(raw))
            if changed is None:
                return raw
            return [item.to_payload() for item in changed]

        await self._store.update(StorageKeys.WATCHLIST, apply)


def _parse(raw: Any | None) -> list[TrackedAnime]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise create_storage_error(
            "Persisted watchlist is not a list",
            key=StorageKeys.WATCHLIST,
            operation="load_watchlist",
            code=ErrorCode.STORAGE_CORRUPTED,
        )
    try:
        return [TrackedAnime.model_validate(entry) for entry in raw]
    except ValidationError as e:
        raise create_storage_error(
            f"Persisted watchlist entry is invalid: {e.errors()[0]['msg']}",
            key=StorageKeys.WATCHLIST,
            operation="load_watchlist",
            code=ErrorCode.STORAGE_CORRUPTED,
            original_error=e,
        ) from e
