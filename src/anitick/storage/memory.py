"""In-memory key-value store."""

from __future__ import annotations

import copy
from typing import Any, Callable


class InMemoryStore:
    """Process-local store.

    Values are deep-copied on the way in and out so callers never share
    mutable state with the store, the same as with a serializing backend.
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    async def get(self, key: str) -> Any | None:
        value = self._data.get(key)
        return copy.deepcopy(value)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def update(self, key: str, fn: Callable[[Any | None], Any]) -> Any:
        current = copy.deepcopy(self._data.get(key))
        value = fn(current)
        if value is not current:
            self._data[key] = copy.deepcopy(value)
        return copy.deepcopy(value)

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def snapshot(self) -> dict[str, Any]:
        """Return a copy of the whole document."""
        return copy.deepcopy(self._data)
