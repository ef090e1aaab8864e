"""
Key-value storage adapters.

Every backend stores values as JSON text under string keys. ``get`` decodes
and ``set`` encodes; a value that fails to decode is logged and read as
``None`` so callers fall back to an empty collection.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterator

from sqlalchemy import delete, select

from kushl.core.config import get_settings
from kushl.db.create_tables import create_all
from kushl.db.models import StorageEntry
from kushl.db.session import get_session, session_scope

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Synchronous get/set over JSON-serialized values."""

    def _read_raw(self, key: str) -> str | None:
        raise NotImplementedError

    def _write_raw(self, key: str, text: str) -> None:
        raise NotImplementedError

    def _delete_raw(self, key: str) -> None:
        raise NotImplementedError

    def _raw_keys(self) -> Iterator[str]:
        raise NotImplementedError

    def get(self, key: str) -> Any | None:
        text = self._read_raw(key)
        if text is None:
            return None
        try:
            return json.loads(text)
        except (TypeError, ValueError) as exc:
            logger.error("Malformed JSON under %s: %s", key, exc)
            return None

    def set(self, key: str, value: Any) -> None:
        self._write_raw(key, json.dumps(value, ensure_ascii=False))

    def remove(self, key: str) -> None:
        self._delete_raw(key)

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._raw_keys() if k.startswith(prefix))

    def get_raw(self, key: str) -> str | None:
        """Undecoded text, for callers that store plain strings."""
        return self._read_raw(key)

    def set_raw(self, key: str, text: str) -> None:
        self._write_raw(key, text)


class MemoryStore(KeyValueStore):
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def _read_raw(self, key: str) -> str | None:
        return self._data.get(key)

    def _write_raw(self, key: str, text: str) -> None:
        self._data[key] = text

    def _delete_raw(self, key: str) -> None:
        self._data.pop(key, None)

    def _raw_keys(self) -> Iterator[str]:
        return iter(list(self._data))


class CorruptStorageError(ValueError):
    """The storage file exists but cannot be parsed; writing would drop every other key."""


class JsonFileStore(KeyValueStore):
    """
    Whole key map kept in one JSON document on disk.

    The file is re-read on each access and replaced atomically on each write,
    so two processes sharing it follow last-write-wins. An unreadable file
    reads as empty but refuses writes, leaving it in place for recovery.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.RLock()

    def _load(self, strict: bool = False) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            logger.error("Could not read storage file %s: %s", self.path, exc)
            if strict:
                raise CorruptStorageError(f"storage file {self.path} is unreadable") from exc
            return {}
        if not isinstance(data, dict):
            logger.error("Storage file %s does not hold a key map", self.path)
            if strict:
                raise CorruptStorageError(f"storage file {self.path} does not hold a key map")
            return {}
        return data

    def _dump(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)

    def _read_raw(self, key: str) -> str | None:
        with self._lock:
            value = self._load().get(key)
        if value is None or isinstance(value, str):
            return value
        # hand-edited files may hold decoded values
        return json.dumps(value, ensure_ascii=False)

    def _write_raw(self, key: str, text: str) -> None:
        with self._lock:
            data = self._load(strict=True)
            data[key] = text
            self._dump(data)

    def _delete_raw(self, key: str) -> None:
        with self._lock:
            data = self._load(strict=True)
            if key in data:
                del data[key]
                self._dump(data)

    def _raw_keys(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._load()))


class SQLStore(KeyValueStore):
    """One row per key in ``storage_entries``; each call is its own transaction."""

    def __init__(self) -> None:
        create_all()

    def _read_raw(self, key: str) -> str | None:
        with get_session() as session:
            entry = session.get(StorageEntry, key)
            return entry.value if entry else None

    def _write_raw(self, key: str, text: str) -> None:
        with session_scope() as session:
            entry = session.get(StorageEntry, key)
            if entry is None:
                session.add(StorageEntry(key=key, value=text))
            else:
                entry.value = text

    def _delete_raw(self, key: str) -> None:
        with session_scope() as session:
            session.execute(delete(StorageEntry).where(StorageEntry.key == key))

    def _raw_keys(self) -> Iterator[str]:
        with get_session() as session:
            return iter(list(session.execute(select(StorageEntry.key)).scalars().all()))


@lru_cache
def get_store() -> KeyValueStore:
    """Build the backend selected by STORAGE_BACKEND."""
    settings = get_settings()
    if settings.storage_backend == "memory":
        return MemoryStore()
    if settings.storage_backend == "sql":
        return SQLStore()
    return JsonFileStore(settings.storage_path)
