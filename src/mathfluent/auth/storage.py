"""Persistence for the signed-in user between runs.

Hidden design decisions:
- Where the session lives (a JSON file keyed like browser local storage)
- Storage failures never break sign-in; they are logged and ignored
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from ..config import SESSION_STORAGE_KEY

logger = logging.getLogger(__name__)


class SessionStorage(ABC):
    """Key/value storage for the current session."""

    @abstractmethod
    def read(self, key: str = SESSION_STORAGE_KEY) -> dict[str, Any] | None:
        """Return the stored value, or None if absent or unreadable."""
        pass

    @abstractmethod
    def write(self, value: dict[str, Any], key: str = SESSION_STORAGE_KEY) -> None:
        pass

    @abstractmethod
    def remove(self, key: str = SESSION_STORAGE_KEY) -> None:
        pass


class InMemorySessionStorage(SessionStorage):
    """Session storage that lasts for the process lifetime."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}

    def read(self, key: str = SESSION_STORAGE_KEY) -> dict[str, Any] | None:
        return self._data.get(key)

    def write(self, value: dict[str, Any], key: str = SESSION_STORAGE_KEY) -> None:
        self._data[key] = value

    def remove(self, key: str = SESSION_STORAGE_KEY) -> None:
        self._data.pop(key, None)


class FileSessionStorage(SessionStorage):
    """Session storage backed by a single JSON file."""

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read session file %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as e:
            logger.warning("Could not write session file %s: %s", self.path, e)

    def read(self, key: str = SESSION_STORAGE_KEY) -> dict[str, Any] | None:
        value = self._load().get(key)
        return value if isinstance(value, dict) else None

    def write(self, value: dict[str, Any], key: str = SESSION_STORAGE_KEY) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str = SESSION_STORAGE_KEY) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)
