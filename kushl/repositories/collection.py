"""
Collection helper over a single storage key.

Each collection is one JSON array. Every operation reads the whole array,
changes it in memory and writes the whole array back.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

from .storage import KeyValueStore, get_store

logger = logging.getLogger(__name__)

_locks: dict[str, threading.RLock] = {}
_locks_guard = threading.Lock()


def _lock_for(key: str) -> threading.RLock:
    with _locks_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = _locks[key] = threading.RLock()
        return lock


class JsonCollection:
    """Read-all / write-all access to a list of dict records under ``key``."""

    def __init__(self, key: str, store: Optional[KeyValueStore] = None, id_field: str = "id") -> None:
        self.key = key
        self.id_field = id_field
        self._store = store

    @property
    def store(self) -> KeyValueStore:
        return self._store if self._store is not None else get_store()

    @contextmanager
    def locked(self) -> Iterator["JsonCollection"]:
        """Hold the collection lock across a read-modify-write sequence."""
        with _lock_for(self.key):
            yield self

    def all(self) -> list[dict]:
        data = self.store.get(self.key)
        if data is None:
            return []
        if not isinstance(data, list):
            logger.error("Expected a list under %s, found %s", self.key, type(data).__name__)
            return []
        return data

    def save(self, items: list[dict]) -> None:
        self.store.set(self.key, items)

    def find(self, item_id: Any) -> dict | None:
        for item in self.all():
            if item.get(self.id_field) == item_id:
                return item
        return None

    def filter(self, predicate: Callable[[dict], bool]) -> list[dict]:
        return [item for item in self.all() if predicate(item)]

    def append(self, item: dict) -> None:
        with self.locked():
            items = self.all()
            items.append(item)
            self.save(items)

    def extend(self, new_items: list[dict]) -> None:
        if not new_items:
            return
        with self.locked():
            items = self.all()
            items.extend(new_items)
            self.save(items)

    def replace(self, item: dict) -> bool:
        """Swap the record with the same id; False when it is not stored."""
        with self.locked():
            items = self.all()
            for index, current in enumerate(items):
                if current.get(self.id_field) == item.get(self.id_field):
                    items[index] = item
                    self.save(items)
                    return True
        return False

    def remove(self, item_id: Any) -> bool:
        with self.locked():
            items = self.all()
            remaining = [item for item in items if item.get(self.id_field) != item_id]
            if len(remaining) == len(items):
                return False
            self.save(remaining)
            return True

    def update(self, item_id: Any, fn: Callable[[dict], Optional[dict]]) -> dict | None:
        """Apply ``fn`` to the record in place (or use its return value) and persist."""
        with self.locked():
            items = self.all()
            for index, current in enumerate(items):
                if current.get(self.id_field) == item_id:
                    result = fn(current)
                    items[index] = result if result is not None else current
                    self.save(items)
                    return items[index]
        return None
