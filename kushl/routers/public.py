from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from kushl.services import notification_service, review_service, sop_service, task_service
from kushl.services.session_service import current_user_id
from kushl.services.user_service import find_user_by_id

router = APIRouter(prefix="/public", tags=["public"])


@router.get("/tasks")
def published_tasks(q: str = "", priority: str | None = None, category: str | None = None):
    tasks = task_service.filter_tasks(task_service.get_all_published_tasks(), q, None, priority)
    if category:
        tasks = [t for t in tasks if t.get("category") == category]
    return [task_service.public_task(t) for t in tasks]


@router.get("/reviews")
def best_reviews(reviewer_type: str = "student", limit: int = 6, page: int = 1):
    if reviewer_type not in review_service.REVIEWER_TYPES:
        raise HTTPException(400, "reviewer_type must be employer or student")
    return review_service.get_best_reviews(reviewer_type, limit, page)


@router.get("/sop-categories")
def sop_categories():
    return sop_service.get_available_categories()


@router.get("/sops/{category}")
def sop_for_category(category: str):
    sop = sop_service.get_sop_for_category(category)
    if not sop:
        raise HTTPException(404, "No SOP for this category")
    return sop


@router.get("/notifications")
def active_notifications(request: Request):
    user_id = current_user_id(request)
    user = find_user_by_id(user_id) if user_id else None
    return notification_service.get_active_notifications(user.get("userType") if user else None)
