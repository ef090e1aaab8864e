"""Request guards shared by the routers."""

from __future__ import annotations

from fastapi import HTTPException, Request

from kushl.domain.constants import UserStatus, UserType
from kushl.services import user_service
from kushl.services.auth_service import public_user
from kushl.services.session_service import current_user_id


def require_user(request: Request) -> dict:
    user_id = current_user_id(request)
    if not user_id:
        raise HTTPException(401, "not authenticated")
    user = user_service.find_user_by_id(user_id)
    if not user:
        raise HTTPException(401, "not authenticated")
    if user.get("status") == UserStatus.BLOCKED.value:
        raise HTTPException(403, "account blocked")
    return public_user(user)


def require_admin(request: Request, permission: str | None = None) -> dict:
    user = require_user(request)
    if user.get("userType") != UserType.ADMIN.value:
        raise HTTPException(403, "forbidden")
    if permission and not user_service.has_admin_permission(user, permission):
        raise HTTPException(403, "forbidden")
    return user


def required(payload: dict, *names: str) -> list:
    """Pull mandatory fields out of a JSON body, 400 when any is missing or empty."""
    missing = [name for name in names if payload.get(name) in (None, "")]
    if missing:
        raise HTTPException(400, f"missing field(s): {', '.join(missing)}")
    return [payload[name] for name in names]
