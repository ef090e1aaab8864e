"""Session helpers (issue tokens, cookies, validation)."""
from __future__ import annotations

import logging
import secrets

from fastapi import Request, Response

from kushl.core.config import get_settings
from kushl.core.utils import now_ms
from kushl.domain.constants import SESSIONS_KEY
from kushl.repositories.collection import JsonCollection

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "kushl_session"

sessions = JsonCollection(SESSIONS_KEY, id_field="token")


def issue_session(user_id: str) -> str:
    """Create a new session token bound to ``user_id`` and persist it."""
    token = secrets.token_urlsafe(32)
    ttl = max(60, get_settings().session_ttl_seconds)
    now = now_ms()
    with sessions.locked():
        # expired entries are dropped whenever a new one is written
        alive = [s for s in sessions.all() if (s.get("expiresAt") or 0) > now]
        alive.append({"token": token, "userId": user_id, "createdAt": now, "expiresAt": now + ttl * 1000})
        sessions.save(alive)
    return token


def session_user_id(token: str | None) -> str | None:
    """Return the user id bound to ``token``, or None when unknown or expired."""
    if not token:
        return None
    entry = sessions.find(token)
    if not entry:
        return None
    if (entry.get("expiresAt") or 0) < now_ms():
        sessions.remove(token)
        return None
    return entry.get("userId")


def current_user_id(request: Request) -> str | None:
    """Return the user id associated with the current session cookie, if any."""
    return session_user_id(request.cookies.get(SESSION_COOKIE_NAME))


def set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    secure_cookie = settings.app_env == "prod"
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        httponly=True,
        secure=secure_cookie,
        samesite="strict",
        max_age=settings.session_ttl_seconds,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")


def delete_session(token: str) -> None:
    if not token:
        return
    if sessions.remove(token):
        logger.debug("Session removed")
