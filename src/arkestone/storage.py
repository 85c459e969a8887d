"""Durable key-value storage backends for persisted stores."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Protocol

_logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class Storage(Protocol):
    """Structural key-value storage interface used by persisted stores."""

    def get_item(self, key: str) -> str | None:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


class MemoryStorage:
    """Process-local storage, mainly for tests and ephemeral hosts."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def __len__(self) -> int:
        return len(self._items)


class FileStorage:
    """One JSON file per key inside *directory*.

    Writes go to a temporary sibling file first and are then moved into
    place, so a crash mid-write never leaves a truncated entry behind.
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        return self._directory / f"{_UNSAFE_KEY_CHARS.sub('_', key)}.json"

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)

    def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


_default_storage: Storage | None = None


def get_default_storage() -> Storage:
    """Return the process-wide storage, creating a :class:`FileStorage` on first use.

    The directory comes from ``ARKESTONE_STORAGE_DIR`` and defaults to
    ``~/.arkestone``.
    """
    global _default_storage
    if _default_storage is None:
        directory = os.environ.get("ARKESTONE_STORAGE_DIR") or Path.home() / ".arkestone"
        _logger.debug("Using file storage at %s", directory)
        _default_storage = FileStorage(directory)
    return _default_storage


def set_default_storage(storage: Storage | None) -> None:
    """Install *storage* as the process-wide default (``None`` re-enables lazy creation)."""
    global _default_storage
    _default_storage = storage
