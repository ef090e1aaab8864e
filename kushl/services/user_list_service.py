"""
Moderation lists (banned, discouraged, encouraged) stored under ``kushl_<type>_users``.

Entries are keyed by ``userId`` and carry who added them and why. The CSV
import/export is a plain split on newlines and commas with no quoting, so
fields containing commas do not survive a round trip.
"""

from __future__ import annotations

import logging

from kushl.core.utils import iso_from_ms, now_ms
from kushl.domain.constants import UserListType, list_key
from kushl.repositories.collection import JsonCollection

logger = logging.getLogger(__name__)

CSV_HEADER = "userId,username,email,addedAt,addedBy,reason"
REQUIRED_COLUMNS = ("userid", "username", "email")


def _collection(list_type: str) -> JsonCollection:
    return JsonCollection(list_key(list_type), id_field="userId")


def get_users_from_list(list_type: str) -> list[dict]:
    return _collection(list_type).all()


def add_user_to_list(list_type: str, user: dict) -> bool:
    """Append ``user`` stamped with ``addedAt``; False if the userId is already listed."""
    collection = _collection(list_type)
    try:
        with collection.locked():
            items = collection.all()
            if any(item.get("userId") == user.get("userId") for item in items):
                return False
            items.append({**user, "addedAt": now_ms()})
            collection.save(items)
    except (OSError, TypeError, ValueError) as exc:
        logger.error("Error adding user to %s list: %s", list_type, exc)
        return False
    return True


def remove_user_from_list(list_type: str, user_id: str) -> bool:
    collection = _collection(list_type)
    try:
        return collection.remove(user_id)
    except (OSError, TypeError, ValueError) as exc:
        logger.error("Error removing user from %s list: %s", list_type, exc)
        return False


def is_user_in_list(list_type: str, user_id: str) -> bool:
    return _collection(list_type).find(user_id) is not None


def search_users_in_list(list_type: str, query: str) -> list[dict]:
    items = get_users_from_list(list_type)
    if not query:
        return items
    needle = query.lower()
    return [
        item
        for item in items
        if needle in str(item.get("userId", "")).lower()
        or needle in str(item.get("username", "")).lower()
        or needle in str(item.get("email", "")).lower()
    ]


def import_users_to_list(list_type: str, csv_data: str, admin_id: str) -> int:
    """
    Add rows from CSV text to a list and return how many were added.

    The header must name ``userId``, ``username`` and ``email`` (any case);
    ``reason`` is optional. ``addedAt``/``addedBy`` columns are ignored: every
    imported row is stamped with the import time and ``admin_id``. Blank rows,
    rows whose id is already listed and repeated ids within the file are skipped.
    """
    collection = _collection(list_type)
    rows = (csv_data or "").split("\n")
    headers = [h.strip().lower() for h in rows[0].split(",")]
    missing = [name for name in REQUIRED_COLUMNS if name not in headers]
    if missing:
        logger.error("Error importing users to %s list: missing column(s) %s", list_type, ", ".join(missing))
        return 0

    user_id_index = headers.index("userid")
    username_index = headers.index("username")
    email_index = headers.index("email")
    reason_index = headers.index("reason") if "reason" in headers else None
    width = max(user_id_index, username_index, email_index, reason_index or 0) + 1

    try:
        with collection.locked():
            items = collection.all()
            seen = {item.get("userId") for item in items}
            stamp = now_ms()
            added = []
            for line_number, row in enumerate(rows[1:], start=2):
                if not row.strip():
                    continue
                columns = row.split(",")
                if len(columns) < width:
                    logger.warning("Skipping short CSV row %d in %s import", line_number, list_type)
                    continue
                user_id = columns[user_id_index].strip()
                if not user_id or user_id in seen:
                    continue
                seen.add(user_id)
                added.append(
                    {
                        "userId": user_id,
                        "username": columns[username_index].strip(),
                        "email": columns[email_index].strip(),
                        "reason": columns[reason_index].strip() if reason_index is not None else "",
                        "addedAt": stamp,
                        "addedBy": admin_id,
                    }
                )
            if added:
                collection.save(items + added)
    except (OSError, TypeError, ValueError) as exc:
        logger.error("Error importing users to %s list: %s", list_type, exc)
        return 0
    logger.info("Imported %d user(s) into %s list", len(added), list_type)
    return len(added)


def export_users_from_list(list_type: str) -> str:
    lines = [CSV_HEADER]
    for item in get_users_from_list(list_type):
        lines.append(
            ",".join(
                [
                    str(item.get("userId", "")),
                    str(item.get("username", "")),
                    str(item.get("email", "")),
                    iso_from_ms(item.get("addedAt")),
                    str(item.get("addedBy", "")),
                    str(item.get("reason", "")),
                ]
            )
        )
    return "\n".join(lines)


def apply_user_list_effects(user_id: str) -> dict:
    return {
        "isBanned": is_user_in_list(UserListType.BANNED.value, user_id),
        "isDiscouraged": is_user_in_list(UserListType.DISCOURAGED.value, user_id),
        "isEncouraged": is_user_in_list(UserListType.ENCOURAGED.value, user_id),
    }
