"""
Authentication and profile use cases.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from kushl.core.security import hash_password, is_hashed, verify_password
from kushl.core.utils import now_ms
from kushl.domain.constants import UserListType, UserStatus, UserType
from kushl.services import user_service
from kushl.services.project_service import create_default_project_for_user
from kushl.services.session_service import delete_session, issue_session
from kushl.services.user_list_service import is_user_in_list

logger = logging.getLogger(__name__)

REGISTRABLE_TYPES = {UserType.STUDENT.value, UserType.EMPLOYER.value}
# only admins or server-side flows may change these
PROTECTED_PROFILE_FIELDS = frozenset(
    {"id", "password", "userType", "isProfileComplete", "permissions", "adminLevel", "status", "profileMetrics"}
)


class AuthError(Exception):
    """Base class for authentication-related exceptions."""


class RegistrationError(AuthError):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AccountExistsError(AuthError):
    pass


class InvalidCredentialsError(AuthError):
    pass


class NotFoundError(AuthError):
    pass


class AccountBlockedError(AuthError):
    pass


@dataclass
class RegisterResult:
    user_id: str
    user: dict
    session_token: str
    default_project_id: Optional[str]


@dataclass
class LoginResult:
    user: dict
    session_token: str
    profile_complete: bool


def public_user(user: Optional[dict]) -> Optional[dict]:
    """User record without the stored password."""
    if user is None:
        return None
    return {k: v for k, v in user.items() if k != "password"}


def is_profile_complete(user: dict) -> bool:
    """
    Basic info, payment details, a picture (students) or logo (employers) and a PAN card.

    Admins are always complete.
    """
    if user.get("userType") == UserType.ADMIN.value:
        return True
    payment = user.get("payment") or {}
    profile = user.get("profile") or {}
    compliance = user.get("compliance") or {}
    has_basic = bool(user.get("fullName") and user.get("email") and user.get("whatsappNumber"))
    has_payment = bool(payment.get("bankAccountName") and payment.get("accountNumber"))
    if user.get("userType") == UserType.STUDENT.value:
        has_profile = bool(profile.get("profilePicture"))
    else:
        has_profile = bool(profile.get("companyLogo"))
    return has_basic and has_payment and has_profile and bool(compliance.get("panCard"))


@dataclass
class AuthService:
    """Handles registration, login, logout and profile updates."""

    # -------------------------------------- registration --------------------------------------
    def register(self, data: dict) -> RegisterResult:
        email = (data.get("email") or "").strip()
        if not email:
            raise RegistrationError("Email is required")
        user_type = data.get("userType") or UserType.STUDENT.value
        if user_type not in REGISTRABLE_TYPES:
            raise RegistrationError("userType must be student or employer")
        if user_service.find_user_by_email(email):
            raise AccountExistsError("Email already registered")
        password = data.get("password") or ""
        if len(password) < 8:
            raise RegistrationError("Password too short. Use at least 8 characters")

        user_id = user_service.generate_user_id()
        now = now_ms()
        user = {
            **{k: v for k, v in data.items() if k not in {"id", "password", "isProfileComplete"}},
            "id": user_id,
            "email": email,
            "userType": user_type,
            "password": hash_password(password),
            "isProfileComplete": False,
            "lastActiveDate": now,
            "profileMetrics": {
                "taskCompletionRate": 0,
                "averageRating": 0,
                "responseTimeMinutes": 60,
                "lastActiveDate": now,
                "profileScore": 50,
            },
        }
        user_service.add_user(user)
        user_service.save_current_user(public_user(user))

        default_project_id = None
        if user_type == UserType.EMPLOYER.value:
            try:
                default_project_id = create_default_project_for_user(user_id, user.get("fullName") or email)
            except (OSError, TypeError, ValueError) as exc:
                logger.error("Error creating default project: %s", exc)
        logger.info("Registered %s %s", user_type, user_id)
        token = issue_session(user_id)
        return RegisterResult(user_id=user_id, user=public_user(user), session_token=token, default_project_id=default_project_id)

    # -------------------------------------- login --------------------------------------
    def login(self, email: str, password: str) -> LoginResult:
        raw_email = (email or "").strip()
        if not raw_email:
            raise InvalidCredentialsError("Invalid email or password")
        user = user_service.find_user_by_email(raw_email)
        if not user or not verify_password(password, user.get("password")):
            raise InvalidCredentialsError("Invalid email or password")
        if user.get("status") == UserStatus.BLOCKED.value or is_user_in_list(UserListType.BANNED.value, user["id"]):
            raise AccountBlockedError("Account is blocked")
        if user.get("password") and not is_hashed(user["password"]):
            user["password"] = hash_password(password)
        user["lastActiveDate"] = now_ms()
        user_service.update_user(user)
        user_service.save_current_user(public_user(user))
        token = issue_session(user["id"])
        return LoginResult(user=public_user(user), session_token=token, profile_complete=is_profile_complete(user))

    def logout(self, session_token: Optional[str]):
        user_service.save_current_user(None)
        if not session_token:
            return
        delete_session(session_token)

    # -------------------------------------- profile --------------------------------------
    def update_profile(self, user_id: str, updates: dict) -> dict:
        user = user_service.find_user_by_id(user_id)
        if not user:
            raise NotFoundError("Not logged in")
        changes = {k: v for k, v in (updates or {}).items() if k not in PROTECTED_PROFILE_FIELDS}
        if "email" in changes:
            email = (changes["email"] or "").strip()
            if not email:
                raise RegistrationError("Email is required")
            owner = user_service.find_user_by_email(email)
            if owner and owner.get("id") != user_id:
                raise AccountExistsError("Email already registered")
            changes["email"] = email
        updated = {**user, **changes}
        updated["isProfileComplete"] = is_profile_complete(updated)
        updated["lastActiveDate"] = now_ms()
        if not user_service.update_user(updated):
            raise AuthError("Profile update failed")
        current = user_service.get_current_user()
        if current and current.get("id") == user_id:
            user_service.save_current_user(public_user(updated))
        return public_user(updated)

    def refresh_user_data(self) -> Optional[dict]:
        """Reload the current user from the users collection."""
        current = user_service.get_current_user()
        if not current:
            return None
        fresh = user_service.find_user_by_id(current.get("id"))
        if fresh is None:
            return current
        user_service.save_current_user(public_user(fresh))
        return public_user(fresh)
