"""JSON document key-value store.

All keys live in a single JSON document on disk. Every write replaces the
document atomically (temp file + ``os.replace``), so a failed write never
leaves a partially written file behind. Writers hold a lock file next to
the document for the whole read-modify-write, so a daemon and one-shot
CLI commands sharing the file never overwrite each other's changes.
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable

import orjson
from filelock import FileLock, Timeout

from anitick.shared.constants import StorageLock
from anitick.shared.errors import ErrorCode, create_storage_error

logger = logging.getLogger(__name__)


class JsonFileStore:
    """Key-value store persisted as one JSON file.

    The document is re-read on every access so that several processes
    (for example a running daemon and a one-shot CLI command) observe each
    other's writes. Mutations are serialized within a process by an
    asyncio lock and across processes by a ``filelock.FileLock``.

    Args:
        path: Location of the JSON document; parent directories are created
        lock_timeout: Seconds to wait for another process to release the document
    """

    def __init__(self, path: Path | str, lock_timeout: float = StorageLock.TIMEOUT) -> None:
        self.path = Path(path)
        self.lock_path = self.path.with_suffix(StorageLock.SUFFIX)
        self._file_lock = FileLock(str(self.lock_path), timeout=lock_timeout)
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Any | None:
        async with self._lock:
            document = await asyncio.to_thread(self._read, key)
        return document.get(key)

    async def set(self, key: str, value: Any) -> None:
        await self.update(key, lambda _current: value)

    async def update(self, key: str, fn: Callable[[Any | None], Any]) -> Any:
        """Replace the value under ``key`` with ``fn(current)`` atomically.

        ``fn`` runs while the document is locked. Returning ``current``
        itself skips the write; raising leaves the document untouched.
        """
        async with self._lock:
            return await asyncio.to_thread(self._locked_update, key, fn)

    async def remove(self, key: str) -> None:
        async with self._lock:
            await asyncio.to_thread(self._locked_remove, key)

    def _locked_update(self, key: str, fn: Callable[[Any | None], Any]) -> Any:
        self._acquire(key, "storage_update")
        try:
            document = self._read(key)
            current = document.get(key)
            value = fn(current)
            if value is current:
                return value
            document[key] = value
            self._write(document, key)
            return value
        finally:
            self._file_lock.release()

    def _locked_remove(self, key: str) -> None:
        self._acquire(key, "storage_remove")
        try:
            document = self._read(key)
            if key not in document:
                return
            del document[key]
            self._write(document, key)
        finally:
            self._file_lock.release()

    def _acquire(self, key: str, operation: str) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file_lock.acquire()
        except Timeout as e:
            raise create_storage_error(
                f"Timed out waiting for lock on {self.path}",
                key=key,
                operation=operation,
                original_error=e,
            ) from e
        except OSError as e:
            raise create_storage_error(
                f"Failed to lock {self.path}: {e}",
                key=key,
                operation=operation,
                original_error=e,
            ) from e

    def _read(self, key: str) -> dict[str, Any]:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise create_storage_error(
                f"Failed to read {self.path}: {e}",
                key=key,
                operation="storage_get",
                code=ErrorCode.STORAGE_READ_FAILED,
                original_error=e,
            ) from e

        if not raw.strip():
            return {}

        try:
            document = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise create_storage_error(
                f"Storage document {self.path} is not valid JSON",
                key=key,
                operation="storage_get",
                code=ErrorCode.STORAGE_CORRUPTED,
                original_error=e,
            ) from e

        if not isinstance(document, dict):
            raise create_storage_error(
                f"Storage document {self.path} is not a JSON object",
                key=key,
                operation="storage_get",
                code=ErrorCode.STORAGE_CORRUPTED,
            )
        return document

    def _write(self, document: dict[str, Any], key: str) -> None:
        try:
            encoded = orjson.dumps(document, option=orjson.OPT_INDENT_2)
        except orjson.JSONEncodeError as e:
            raise create_storage_error(
                f"Value for '{key}' is not JSON serializable: {e}",
                key=key,
                operation="storage_set",
                original_error=e,
            ) from e

        tmp_name: str | None = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "wb") as f:
                f.write(encoded)
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise create_storage_error(
                f"Failed to write {self.path}: {e}",
                key=key,
                operation="storage_set",
                original_error=e,
            ) from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

        logger.debug("Stored key '%s' in %s", key, self.path)
