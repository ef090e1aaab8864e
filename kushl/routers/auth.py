from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from kushl.routers.deps import require_user, required
from kushl.services.auth_service import (
    AccountBlockedError,
    AccountExistsError,
    AuthError,
    AuthService,
    InvalidCredentialsError,
    NotFoundError,
    RegistrationError,
)
from kushl.services.gamification_service import GamificationService
from kushl.services.session_service import SESSION_COOKIE_NAME, clear_session_cookie, set_session_cookie

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])
auth_service = AuthService()


@router.post("/register", status_code=201)
def register(payload: dict):
    try:
        result = auth_service.register(payload)
    except AccountExistsError as exc:
        raise HTTPException(409, str(exc))
    except RegistrationError as exc:
        raise HTTPException(400, exc.message)
    response = JSONResponse(
        {"ok": True, "userId": result.user_id, "user": result.user, "defaultProjectId": result.default_project_id},
        status_code=201,
    )
    set_session_cookie(response, result.session_token)
    return response


@router.post("/login")
def login(payload: dict):
    email, password = required(payload, "email", "password")
    try:
        result = auth_service.login(email, password)
    except InvalidCredentialsError as exc:
        raise HTTPException(401, str(exc))
    except AccountBlockedError as exc:
        raise HTTPException(403, str(exc))
    streak = GamificationService(result.user["id"]).record_login()
    response = JSONResponse(
        {"ok": True, "user": result.user, "profileComplete": result.profile_complete, "streak": streak}
    )
    set_session_cookie(response, result.session_token)
    return response


@router.post("/logout")
def logout(request: Request):
    auth_service.logout(request.cookies.get(SESSION_COOKIE_NAME))
    response = JSONResponse({"ok": True})
    clear_session_cookie(response)
    return response


@router.get("/me")
def me(request: Request):
    return require_user(request)


@router.patch("/profile")
def update_profile(request: Request, payload: dict):
    user = require_user(request)
    try:
        updated = auth_service.update_profile(user["id"], payload)
    except NotFoundError as exc:
        raise HTTPException(404, str(exc))
    except AccountExistsError as exc:
        raise HTTPException(409, str(exc))
    except RegistrationError as exc:
        raise HTTPException(400, exc.message)
    except AuthError as exc:
        logger.error("Profile update failed for %s: %s", user["id"], exc)
        raise HTTPException(500, str(exc))
    if updated.get("isProfileComplete"):
        GamificationService(user["id"]).update_achievement_progress("profile_complete", 4)
    return updated
