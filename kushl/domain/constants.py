"""Domain vocabulary: storage keys, status enums, categories and pricing tiers."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

USERS_KEY = "kushl_users"
CURRENT_USER_KEY = "kushl_current_user"
PAYMENTS_KEY = "kushl_payments"
PROJECTS_KEY = "kushl_projects"
SOP_KEY = "kushl_standard_operating_procedures"
NOTIFICATIONS_KEY = "kushl_notifications"
SESSIONS_KEY = "kushl_sessions"
DEFAULT_PROJECT_KEY = "kushl_default_project_{user_id}"
GAMIFICATION_KEY = "kushl_gamification_{user_id}_{field}"
USER_LIST_KEY = "kushl_{list_type}_users"


class UserType(str, Enum):
    STUDENT = "student"
    EMPLOYER = "employer"
    ADMIN = "admin"


class UserStatus(str, Enum):
    ACTIVE = "active"
    BLOCKED = "blocked"
    HOLD = "hold"


class TaskStatus(str, Enum):
    """Flat task status. Any value may follow any other; there is no transition graph."""

    TO_DO = "to_do"
    DOING = "doing"
    DONE = "done"
    RECURRING_DAILY = "recurring_daily"
    RECURRING_WEEKLY = "recurring_weekly"
    RECURRING_MONTHLY = "recurring_monthly"
    BLOCKED = "blocked"
    CHECKLIST_LIBRARY = "checklist_library"
    CREDENTIALS_LIBRARY = "credentials_library"
    BRAND_BRIEF = "brand_brief"
    RESOURCE_LIBRARY = "resource_library"
    DRAFT = "draft"
    PUBLISHED = "published"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    COMPLETED = "completed"
    ARCHIVED = "archived"


LIBRARY_STATUSES = frozenset(
    {
        TaskStatus.CHECKLIST_LIBRARY.value,
        TaskStatus.CREDENTIALS_LIBRARY.value,
        TaskStatus.BRAND_BRIEF.value,
        TaskStatus.RESOURCE_LIBRARY.value,
    }
)
RECURRING_STATUSES = frozenset(
    {
        TaskStatus.RECURRING_DAILY.value,
        TaskStatus.RECURRING_WEEKLY.value,
        TaskStatus.RECURRING_MONTHLY.value,
    }
)


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class UserListType(str, Enum):
    BANNED = "banned"
    DISCOURAGED = "discouraged"
    ENCOURAGED = "encouraged"


ADMIN_PERMISSIONS = ("manageUsers", "managePayments", "viewAnalytics", "manageContent", "manageSettings")

ADMIN_LEVEL_PERMISSIONS = {
    "super": {p: True for p in ADMIN_PERMISSIONS},
    "manager": {
        "manageUsers": True,
        "managePayments": True,
        "viewAnalytics": True,
        "manageContent": False,
        "manageSettings": False,
    },
    "support": {
        "manageUsers": False,
        "managePayments": False,
        "viewAnalytics": True,
        "manageContent": False,
        "manageSettings": False,
    },
}

TASK_CATEGORIES = [
    "Website Development",
    "Video Editing",
    "Software Development",
    "Search Engine Optimization",
    "Architecture & Interior Design",
    "Book Design",
    "User Generated Content",
    "Voice Over",
    "Social Media Marketing",
    "AI Development",
    "Logo Design",
    "Graphics & Design",
    "Digital Marketing",
    "Writing & Translation",
    "Animation",
    "Music & Audio",
    "Programming & Tech",
    "Business Consulting",
    "Data Analysis",
    "Photography",
    "Finance",
    "Legal Services",
]


@dataclass(frozen=True)
class CommissionTier:
    min_amount: float
    max_amount: float
    percentage: int


PLATFORM_CHARGES_TIERS = (
    CommissionTier(0, 999, 15),
    CommissionTier(1000, 4999, 10),
    CommissionTier(5000, 9999, 7),
    CommissionTier(10000, 49999, 5),
    CommissionTier(50000, 100000, 3),
)
CURRENCY = "₹"


def list_key(list_type: str) -> str:
    """Storage key for a moderation list; raises ValueError for unknown types."""
    return USER_LIST_KEY.format(list_type=UserListType(list_type).value)
