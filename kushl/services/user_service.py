"""
User records stored under ``kushl_users``.

Users are created at registration, edited in place and never hard-deleted.
"""

from __future__ import annotations

import logging
from typing import Optional

from kushl.core.utils import generate_id, now_ms
from kushl.domain.constants import (
    ADMIN_LEVEL_PERMISSIONS,
    CURRENT_USER_KEY,
    USERS_KEY,
    UserStatus,
    UserType,
)
from kushl.repositories.collection import JsonCollection

logger = logging.getLogger(__name__)

users = JsonCollection(USERS_KEY)

generate_user_id = generate_id


def get_users() -> list[dict]:
    return users.all()


def save_users(items: list[dict]) -> None:
    users.save(items)


def add_user(user: dict) -> None:
    users.append(user)


def update_user(updated_user: dict) -> bool:
    try:
        return users.replace(updated_user)
    except (OSError, ValueError, TypeError) as exc:
        logger.error("Error updating user %s: %s", updated_user.get("id"), exc)
        return False


def find_user_by_email(email: str) -> Optional[dict]:
    for user in users.all():
        if user.get("email") == email:
            return user
    return None


def find_user_by_id(user_id: str) -> Optional[dict]:
    return users.find(user_id)


get_user_by_id = find_user_by_id


def get_users_by_type(user_type: str) -> list[dict]:
    value = UserType(user_type).value
    return users.filter(lambda u: u.get("userType") == value)


def update_user_status(user_id: str, status: str) -> bool:
    value = UserStatus(status).value

    def _apply(user: dict) -> dict:
        return {**user, "status": value, "updatedAt": now_ms()}

    return users.update(user_id, _apply) is not None


def reset_user_password(user_id: str) -> bool:
    logger.info("Password reset requested for user %s", user_id)
    return True


def search_users(query: str) -> list[dict]:
    """Case-insensitive substring match on id, name and email."""
    if not query:
        return users.all()
    needle = query.lower()
    return users.filter(
        lambda u: needle in str(u.get("id", "")).lower()
        or needle in str(u.get("fullName", "")).lower()
        or needle in str(u.get("email", "")).lower()
    )


# ----------------------------------------------------------------- current user
def get_current_user() -> Optional[dict]:
    user = users.store.get(CURRENT_USER_KEY)
    return user if isinstance(user, dict) else None


def save_current_user(user: Optional[dict]) -> None:
    if user:
        users.store.set(CURRENT_USER_KEY, user)
    else:
        users.store.remove(CURRENT_USER_KEY)


# ----------------------------------------------------------------- admins
def create_admin_user(full_name: str, email: str, whatsapp_number: str, admin_level: str = "support") -> dict:
    """Build (not store) an admin profile; unknown levels fall back to support."""
    level = admin_level if admin_level in ADMIN_LEVEL_PERMISSIONS else "support"
    return {
        "id": generate_user_id(),
        "fullName": full_name,
        "email": email,
        "whatsappNumber": whatsapp_number,
        "userType": UserType.ADMIN.value,
        "adminLevel": level,
        "isProfileComplete": True,
        "lastActiveDate": now_ms(),
        "permissions": dict(ADMIN_LEVEL_PERMISSIONS[level]),
    }


def has_admin_permission(user: Optional[dict], permission: str) -> bool:
    if not user or user.get("userType") != UserType.ADMIN.value:
        return False
    return bool((user.get("permissions") or {}).get(permission))
