from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Protocol

"""
Key-value persistence for small client state.

The location filter only needs `get/set/remove` of string values under a well-known
key, so this is a string store rather than a cache:
- `MemoryStore` keeps values in a dict (tests, embedding in another process).
- `JsonFileStore` keeps all keys in one JSON object on disk, written via a temporary
  file + atomic replace so a crash never leaves a half-written file.

Both are async: file I/O runs in a worker thread so the event loop is never blocked.
"""

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def remove(self, key: str) -> None: ...


class MemoryStore:
    """Dict-backed store."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        return dict(self._data)


class JsonFileStore:
    """All keys in a single JSON object file."""

    def __init__(self, path: Path):
        self._path = path
        # Serializes read-modify-write cycles issued from the same loop.
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        raw = json.loads(self._path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError(f"Invalid store file {self._path}; expected a JSON object.")
        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def _read_for_write(self) -> tuple[dict[str, str], bool]:
        # A damaged file must not block every later save: start over from an empty object.
        try:
            return self._read_all(), False
        except ValueError as exc:
            logger.warning("Replacing unreadable store file %s (%s)", self._path, exc)
            return {}, True

    def _write_all(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self._path)

    async def get(self, key: str) -> str | None:
        data = await asyncio.to_thread(self._read_all)
        return data.get(key)

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            data, _ = await asyncio.to_thread(self._read_for_write)
            data[key] = value
            await asyncio.to_thread(self._write_all, data)

    async def remove(self, key: str) -> None:
        async with self._lock:
            data, damaged = await asyncio.to_thread(self._read_for_write)
            if key not in data and not damaged:
                return
            data.pop(key, None)
            await asyncio.to_thread(self._write_all, data)
