"""Capability protocols for dependency inversion.

The tracker core talks to its environment only through these interfaces:
a key-value store, an HTTP transport, a notification display and a timer
scheduler. Concrete adapters live in ``anitick.storage``,
``anitick.services.anilist.transport`` and ``anitick.adapters``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from anitick.shared.models.notifications import NotificationContent


class KeyValueStore(Protocol):
    """Async key-value store.

    Each call is atomic at the storage layer. Failures raise StorageError.

    Example:
        >>> store: KeyValueStore = InMemoryStore()
        >>> await store.set("watchlist", [])
        >>> await store.get("watchlist")
        []
    """

    async def get(self, key: str) -> Any | None:
        """Return the stored value or None when the key is absent."""

    async def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    async def update(self, key: str, fn: Callable[[Any | None], Any]) -> Any:
        """Store ``fn(current)`` under ``key`` as one atomic read-modify-write.

        ``fn`` receives the current value (None when absent) and must not
        await. No other writer can change ``key`` in between. Returns the
        stored value.
        """

    async def remove(self, key: str) -> None:
        """Delete ``key``; deleting an absent key is a no-op."""


@dataclass(frozen=True)
class TransportResponse:
    """Opaque HTTP response as seen by the catalog client."""

    status: int
    body: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)


class Transport(Protocol):
    """Issues one GraphQL request and returns the raw response.

    Connection failures and timeouts raise NetworkError; HTTP error
    statuses are returned, not raised.
    """

    async def __call__(self, payload: dict[str, Any]) -> TransportResponse:
        """Send ``payload`` ({"query": ..., "variables": ...})."""


class NotificationDisplay(Protocol):
    """Platform notification capability."""

    async def create(self, notification_id: str, content: NotificationContent) -> str:
        """Display a notification and return the platform handle.

        Raises:
            NotificationDisplayError: If the platform rejects the notification
        """

    async def clear(self, notification_id: str) -> None:
        """Dismiss a displayed notification."""


TimerCallback = Callable[[], Awaitable[None]]


class TimerScheduler(Protocol):
    """Named periodic trigger capability.

    Firings of the same timer never overlap; missed ticks are not queued.
    """

    async def clear_all(self) -> None:
        """Cancel every registered timer."""

    def create(self, name: str, period_minutes: float, callback: TimerCallback) -> None:
        """Register ``callback`` to fire every ``period_minutes``."""
