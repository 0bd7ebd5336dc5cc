"""
Key-value persistence collaborators for trade history.

- MemoryStore: process-local dict
- JsonFileStore: one <key>.json file per key in a directory

Stores hold strings; HistoryStore does its own (de)serialization. Stores may
raise OSError; HistoryStore is responsible for swallowing it.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from ..utils.logger import get_logger

logger = get_logger()

_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


class KeyValueStore(ABC):
    """String key-value store."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored string or None."""
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove a key. Removing a missing key is a no-op."""
        ...


class MemoryStore(KeyValueStore):
    """In-memory store; shared by every HistoryStore given the same instance."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class JsonFileStore(KeyValueStore):
    """
    Directory-backed store: each key is written to <directory>/<key>.json.

    Writes go through a temp file and rename so a crash never leaves a
    half-written value.
    """

    def __init__(self, directory: str | Path):
        self._dir = Path(directory)
        self._dir.mkdir(parents=True, exist_ok=True)
        logger.debug(f"JsonFileStore initialized: {self._dir}")

    @property
    def directory(self) -> Path:
        return self._dir

    def _path(self, key: str) -> Path:
        return self._dir / f"{_SAFE_KEY.sub('_', key)}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)

    def remove(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()
