"""Key-value storage used to remember anti-forgery state values.

The flow only needs two synchronous operations; any browser-like storage,
keyring or cache can be plugged in by implementing :class:`Storage`.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from popauth.client.models.errors import OAuth2Error

logger = logging.getLogger(__name__)


class Storage(Protocol):
    """Protocol for the persistent key-value store."""

    def get_item(self, key: str) -> str | None:
        """Return the value stored under ``key``, or None."""
        ...

    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...


class MemoryStorage:
    """Process-local storage backed by a dict."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value


class JsonFileStorage:
    """Storage persisted as a flat JSON object in a single file.

    Every write replaces the file atomically (temp file then rename) so an
    interrupted write never leaves a truncated document behind.
    """

    def __init__(self, path: str | os.PathLike[str]):
        self.path = Path(path)

    def get_item(self, key: str) -> str | None:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._load()
        items[key] = value
        self._atomic_write(items)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise OAuth2Error(f"Failed to read storage file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise OAuth2Error(f"Storage file {self.path} must contain a JSON object")
        return data

    def _atomic_write(self, items: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(items, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise
        logger.debug(f"Wrote {len(items)} entries to {self.path}")
