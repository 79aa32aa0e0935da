"""
On-device key-value storage -- string keys to string values.

All keys live in one JSON file. Every mutation rewrites the file
through a temp file and ``os.replace``, so a multi-key removal either
happens completely or not at all.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, Optional

logger = logging.getLogger("foodsnap.sync.kvstore")


class StorageError(Exception):
    """Raised when the storage file cannot be read or written."""


class KeyValueStore:
    """Durable string-to-string map backed by a single JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise StorageError(f"Cannot read {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageError(f"{self.path} does not hold a key-value object")
        return data

    def _write(self, data: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}-", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(data, fh)
                os.replace(tmp, self.path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(f"Cannot write {self.path}: {exc}") from exc

    def get_item(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        self.multi_remove([key])

    def multi_remove(self, keys: Iterable[str]) -> None:
        """Remove every key in ``keys`` in one atomic write."""
        data = self._read()
        removed = [k for k in keys if data.pop(k, None) is not None]
        if removed:
            self._write(data)
            logger.debug("Removed keys: %s", ", ".join(removed))

    def keys(self) -> list[str]:
        return sorted(self._read())
