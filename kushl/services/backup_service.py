"""
Whole-store backup and restore.

A backup is ``{"timestamp", "version", "data", "raw"}``: ``data`` maps every
``kushl_*`` key holding JSON to its decoded value, ``raw`` holds the few keys
stored as plain text (default project ids, gamification counters).
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from kushl.core.config import get_settings
from kushl.core.utils import now_ms
from kushl.repositories.storage import KeyValueStore, get_store

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0"


def backup_data(store: Optional[KeyValueStore] = None) -> dict:
    store = store or get_store()
    data: dict[str, Any] = {}
    raw: dict[str, str] = {}
    for key in store.keys(get_settings().key_prefix):
        text = store.get_raw(key)
        if text is None:
            continue
        try:
            data[key] = json.loads(text)
        except ValueError:
            raw[key] = text
    logger.info("Backup created with %d key(s)", len(data) + len(raw))
    return {"timestamp": now_ms(), "version": BACKUP_VERSION, "data": data, "raw": raw}


def restore_data(payload: Any, store: Optional[KeyValueStore] = None) -> tuple[bool, str]:
    """Write every key of a backup back into the store. Keys absent from the backup are left alone."""
    if not isinstance(payload, dict) or not payload.get("timestamp") or not payload.get("version"):
        return False, "Invalid backup data"
    data = payload.get("data")
    raw = payload.get("raw") or {}
    if not isinstance(data, dict) or not isinstance(raw, dict):
        return False, "Invalid backup data"

    prefix = get_settings().key_prefix
    store = store or get_store()
    restored = 0
    try:
        for key, value in data.items():
            if not str(key).startswith(prefix):
                continue
            store.set(key, value)
            restored += 1
        for key, text in raw.items():
            if not str(key).startswith(prefix):
                continue
            store.set_raw(key, str(text))
            restored += 1
    except (OSError, TypeError, ValueError) as exc:
        logger.error("Error restoring backup: %s", exc)
        return False, "Failed to restore backup"
    logger.info("Restored %d key(s) from backup", restored)
    return True, f"Restored {restored} key(s)"
