"""Async key-value storage used for tokens, the signed-in user and snapshots.

Device storage is an external collaborator; anything implementing
:class:`KeyValueStorage` can be plugged in. Two implementations ship with
the package: :class:`MemoryStorage` for tests and ephemeral sessions, and
:class:`JsonFileStorage` which keeps every key in one JSON file.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Protocol

from jobsync.exceptions import StorageError

_logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    """Structural async key-value interface.

    Values are opaque strings; callers own their serialization.
    """

    async def get_item(self, key: str) -> str | None: ...

    async def set_item(self, key: str, value: str) -> None: ...

    async def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Dict-backed storage. Contents live as long as the instance."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        """Copy of everything stored, for inspection in tests and tooling."""
        return dict(self._items)


class JsonFileStorage:
    """Storage persisted as a single JSON object on disk.

    File I/O runs in a worker thread; an ``asyncio.Lock`` serializes
    read-modify-write cycles issued from the same event loop. Writes go to a
    temporary file that is atomically renamed over the target.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, str]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise StorageError(f"Could not read {self._path}: {exc}") from exc
        if not text.strip():
            return {}
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise StorageError(f"Storage file {self._path} is not valid JSON") from exc
        if not isinstance(data, dict):
            raise StorageError(f"Storage file {self._path} does not hold a JSON object")
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, items: dict[str, str]) -> None:
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(items, separators=(",", ":")), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as exc:
            raise StorageError(f"Could not write {self._path}: {exc}") from exc

    async def get_item(self, key: str) -> str | None:
        async with self._lock:
            items = await asyncio.to_thread(self._read_all)
        return items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        async with self._lock:
            items = await asyncio.to_thread(self._read_all)
            items[key] = value
            await asyncio.to_thread(self._write_all, items)
        _logger.debug("Stored %s (%d chars) in %s", key, len(value), self._path)

    async def remove_item(self, key: str) -> None:
        async with self._lock:
            items = await asyncio.to_thread(self._read_all)
            if items.pop(key, None) is None:
                return
            await asyncio.to_thread(self._write_all, items)
