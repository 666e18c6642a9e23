from __future__ import annotations

import os
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional


_KEY_RE = re.compile(r"^[A-Za-z0-9_\-]+$")


def sanitize_key(key: str) -> str:
    key = (key or "").strip()
    if not key or not _KEY_RE.match(key):
        raise ValueError(f"invalid storage key: {key!r}")
    return key


class KeyValueStore(ABC):
    """String key-value storage, the shape of browser local/session storage."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the raw value, or None when the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value``; readers see either the old or the new value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every key."""


class MemoryKeyValueStore(KeyValueStore):
    """Process-lifetime storage; used for session scope and in tests."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(sanitize_key(key))

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError("value must be a string")
        self._data[sanitize_key(key)] = value

    def delete(self, key: str) -> None:
        self._data.pop(sanitize_key(key), None)

    def clear(self) -> None:
        self._data.clear()

    def keys(self) -> list[str]:
        return sorted(self._data)


class JsonFileKeyValueStore(KeyValueStore):
    """Durable storage: one ``<key>.json`` file per key under ``root``.

    Writes go to a temp file that is then renamed over the target, so a crash
    mid-write leaves the previous value intact.
    """

    suffix = ".json"

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / f"{sanitize_key(key)}{self.suffix}"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError("value must be a string")
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(f".{path.name}.tmp")
        with open(tmp, "w", encoding="utf-8") as fh:
            fh.write(value)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def clear(self) -> None:
        if not self.root.exists():
            return
        for candidate in self.root.iterdir():
            if candidate.is_file() and candidate.name.endswith(self.suffix):
                candidate.unlink(missing_ok=True)
