"""Platform-wide banner notifications with an audience and an active window."""

from __future__ import annotations

import logging
from typing import Optional

from kushl.core.utils import DAY_MS, generate_id, now_ms
from kushl.domain.constants import NOTIFICATIONS_KEY
from kushl.repositories.collection import JsonCollection

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = ("info", "warning", "success", "error")

notifications = JsonCollection(NOTIFICATIONS_KEY)

_AUDIENCE_FIELD = {
    "employer": "showToEmployers",
    "student": "showToStudents",
    "guest": "showToGuests",
    None: "showToGuests",
}


def get_notifications() -> list[dict]:
    return notifications.all()


def get_active_notifications(user_type: str | None = None, now: int | None = None) -> list[dict]:
    """
    Notifications that are active, inside ``startDate..endDate`` and shown to ``user_type``.

    Anonymous visitors (``None``) see the guest audience. Other user types see nothing.
    """
    now = now if now is not None else now_ms()
    field = _AUDIENCE_FIELD.get(user_type)
    if field is None:
        return []
    return [
        n
        for n in get_notifications()
        if n.get("active")
        and (n.get("startDate") or 0) <= now <= (n.get("endDate") or 0)
        and n.get(field)
    ]


def add_notification(
    title: str,
    message: str,
    kind: str = "info",
    show_to_employers: bool = True,
    show_to_students: bool = True,
    show_to_guests: bool = False,
    active: bool = True,
    start_date: int | None = None,
    end_date: int | None = None,
) -> Optional[dict]:
    if kind not in NOTIFICATION_TYPES:
        logger.error("Unknown notification type: %s", kind)
        return None
    start = start_date if start_date is not None else now_ms()
    notification = {
        "id": generate_id(),
        "title": title,
        "message": message,
        "type": kind,
        "showToEmployers": show_to_employers,
        "showToStudents": show_to_students,
        "showToGuests": show_to_guests,
        "active": active,
        "startDate": start,
        "endDate": end_date if end_date is not None else start + 7 * DAY_MS,
    }
    try:
        notifications.append(notification)
    except (OSError, TypeError, ValueError) as exc:
        logger.error("Error adding notification: %s", exc)
        return None
    return notification


def update_notification(notification_id: str, updates: dict) -> bool:
    changes = {k: v for k, v in (updates or {}).items() if k != "id"}
    if "type" in changes and changes["type"] not in NOTIFICATION_TYPES:
        logger.error("Unknown notification type: %s", changes["type"])
        return False
    return notifications.update(notification_id, lambda n: n.update(changes)) is not None


def delete_notification(notification_id: str) -> bool:
    return notifications.remove(notification_id)
