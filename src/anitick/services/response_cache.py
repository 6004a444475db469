"""TTL response cache.

Keeps prior AniList responses keyed by request identity. Expiry is
enforced lazily on every read: an entry older than its TTL is removed and
reported as a miss, so stale data is never returned.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached payload; ``stored_at`` is epoch seconds, ``ttl`` seconds."""

    payload: Any
    stored_at: float
    ttl: float

    def is_valid(self, now: float) -> bool:
        return now - self.stored_at <= self.ttl


class ResponseCache:
    """In-memory TTL cache with read-through invalidation.

    Args:
        clock: Wall-clock time source in epoch seconds, injectable for tests
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._clock = clock

    def get(self, key: str) -> Any | None:
        """Return the cached payload, or None when absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        if not entry.is_valid(self._clock()):
            del self._entries[key]
            logger.debug("Cache entry expired: %s", key)
            return None

        return entry.payload

    def put(self, key: str, payload: Any, ttl: float) -> None:
        """Store or overwrite ``key`` unconditionally."""
        self._entries[key] = CacheEntry(payload=payload, stored_at=self._clock(), ttl=ttl)

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """Export all entries (including not-yet-read expired ones)."""
        return {key: asdict(entry) for key, entry in self._entries.items()}

    def load(self, raw: dict[str, Any] | None) -> int:
        """Replace the contents with previously exported entries.

        Malformed entries are skipped. Returns the number of entries loaded.
        """
        self._entries.clear()
        for key, value in (raw or {}).items():
            try:
                self._entries[key] = CacheEntry(
                    payload=value["payload"],
                    stored_at=float(value["stored_at"]),
                    ttl=float(value["ttl"]),
                )
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed cache entry: %s", key)
        return len(self._entries)
