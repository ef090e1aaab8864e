"""
Persistence adapters.

The storage adapter mirrors the browser key-value store the client used: a flat
map of ``kushl_*`` keys to JSON strings. Services depend on ``get_store()`` and
``JsonCollection`` rather than touching a backend directly.
"""

from .storage import CorruptStorageError, JsonFileStore, KeyValueStore, MemoryStore, SQLStore, get_store
from .collection import JsonCollection

__all__ = ["CorruptStorageError", "KeyValueStore", "MemoryStore", "JsonFileStore", "SQLStore", "get_store", "JsonCollection"]
