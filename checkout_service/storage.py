"""
storage.py — Durable Key-Value Storage

Every piece of state the service keeps (orders, cart, checkout session,
catalog) lives in a named slot holding one JSON document. Two backends are
provided:

    • JsonFileStorage — one '<key>.json' file per slot inside a directory.
      Writes go to a temporary file that replaces the slot atomically, so a
      crash never leaves a half-written document behind.
    • InMemoryStorage — process-local, for tests and throwaway runs.

Any I/O or decoding problem is raised as StorageUnavailable; callers never
see a raw OSError or JSONDecodeError.
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from .exceptions import StorageUnavailable
from .logging_config import get_logger

log = get_logger(__name__)


class Storage(ABC):
    """Interface of a durable key-value store holding JSON-compatible values."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Returns the decoded value of a slot, or None if the slot is empty."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Replaces the value of a slot."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Deletes a slot. Removing an empty slot is a no-op."""


class JsonFileStorage(Storage):
    def __init__(self, directory: str):
        self.directory = directory
        try:
            os.makedirs(directory, exist_ok=True)
        except OSError as e:
            raise StorageUnavailable(directory, str(e)) from e

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def get(self, key):
        path = self._path(key)
        try:
            with open(path, "r", encoding="utf-8") as fh:
                return json.load(fh)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            log.error(f"[Storage] Slot '{key}' could not be read: {e}")
            raise StorageUnavailable(key, str(e)) from e

    def set(self, key, value):
        path = self._path(key)
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(value, fh, ensure_ascii=False)
                os.replace(tmp_path, path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except (OSError, TypeError, ValueError) as e:
            log.error(f"[Storage] Slot '{key}' could not be written: {e}")
            raise StorageUnavailable(key, str(e)) from e

    def remove(self, key):
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageUnavailable(key, str(e)) from e


class InMemoryStorage(Storage):
    """Keeps serialized JSON text per slot so callers never share mutable state."""

    def __init__(self):
        self._slots: Dict[str, str] = {}

    def get(self, key):
        raw = self._slots.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageUnavailable(key, str(e)) from e

    def set(self, key, value):
        try:
            self._slots[key] = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageUnavailable(key, str(e)) from e

    def remove(self, key):
        self._slots.pop(key, None)
