# src/todolingo/storage/kv.py

"""
String key-value stores (the "local storage" the app persists into).

Values are opaque strings; callers JSON-encode them. Writes are all-or-nothing:
on any failure the previously persisted content stays as it was and
StorageError is raised.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from collections.abc import Iterator
from pathlib import Path

from ..errors import StorageError

logger = logging.getLogger(__name__)


def _encoded_size(items: dict[str, str]) -> int:
    return sum(len(k.encode("utf-8")) + len(v.encode("utf-8")) for k, v in items.items())


class MemoryStorage:
    """In-process store. Used by tests and as a scratch backend."""

    def __init__(self, quota_bytes: int | None = None) -> None:
        self._items: dict[str, str] = {}
        self._quota = quota_bytes

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        candidate = dict(self._items)
        candidate[key] = value
        if self._quota is not None and _encoded_size(candidate) > self._quota:
            raise StorageError(f"Storage quota exceeded ({self._quota} bytes)")
        self._items = candidate

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> Iterator[str]:
        return iter(list(self._items))


class JsonFileStorage:
    """
    Store backed by a single JSON object on disk.

    The whole file is rewritten on each change via a temp file + os.replace,
    so a crash mid-write never leaves a half-written store behind.
    """

    def __init__(self, path: str | Path, quota_bytes: int | None = None) -> None:
        self._path = Path(path)
        self._quota = quota_bytes
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._items = self._load()
        logger.info("JsonFileStorage ready path=%s keys=%d", self._path, len(self._items))

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text("utf-8") or "{}")
        except (OSError, ValueError) as e:
            raise StorageError(f"Cannot read {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Cannot read {self._path}: top-level value is not an object")
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _flush(self, items: dict[str, str]) -> None:
        if self._quota is not None and _encoded_size(items) > self._quota:
            raise StorageError(f"Storage quota exceeded ({self._quota} bytes)")
        tmp = self._path.with_suffix(".tmp")
        try:
            tmp.write_text(json.dumps(items, ensure_ascii=False, indent=2), "utf-8")
            os.replace(tmp, self._path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise StorageError(f"Cannot write {self._path}: {e}") from e
        with contextlib.suppress(OSError):
            # Holds password digests and the API key.
            os.chmod(self._path, 0o600)

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        candidate = dict(self._items)
        candidate[key] = value
        self._flush(candidate)
        self._items = candidate

    def remove_item(self, key: str) -> None:
        if key not in self._items:
            return
        candidate = dict(self._items)
        del candidate[key]
        self._flush(candidate)
        self._items = candidate

    def keys(self) -> Iterator[str]:
        return iter(list(self._items))
