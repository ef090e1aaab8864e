from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from kushl.domain.constants import UserListType, UserType
from kushl.routers.deps import require_admin, require_user, required
from kushl.routers.projects import owned_project
from kushl.services import project_service, recurring_service, review_service, student_service, task_service
from kushl.services.gamification_service import GamificationService
from kushl.services.user_list_service import is_user_in_list

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _display_name(user: dict) -> str:
    return user.get("fullName") or user.get("email") or ""


def _task(task_id: str) -> dict:
    task = task_service.get_task_by_id(task_id)
    if not task:
        raise HTTPException(404, "Task not found")
    return task


def _managed_task(task_id: str, user: dict) -> dict:
    """Task whose project belongs to ``user`` (or any task for admins)."""
    task = _task(task_id)
    location = task_service.get_task_location(task_id)
    owned_project(location.get("projectId"), user)
    return task


def _is_participant(task: dict, user: dict) -> bool:
    assignment = task.get("assignment") or {}
    return task.get("assigneeId") == user["id"] or assignment.get("studentId") == user["id"]


def _can_see_details(task: dict, user: dict) -> bool:
    if user.get("userType") == UserType.ADMIN.value or _is_participant(task, user):
        return True
    project = project_service.get_project(task_service.get_task_location(task["id"]).get("projectId"))
    return bool(project) and project.get("ownerId") == user["id"]


def _ok(done: bool, message: str = "Task not found"):
    if not done:
        raise HTTPException(404, message)
    return {"ok": True}


@router.post("/recurring/reset")
def reset_recurring(request: Request):
    require_admin(request)
    return {"ok": True, "reset": recurring_service.check_and_reset_recurring_tasks()}


@router.get("/{task_id}")
def get_task(task_id: str, request: Request):
    user = require_user(request)
    task = _task(task_id)
    if _can_see_details(task, user):
        return task
    return task_service.public_task(task)


@router.get("/{task_id}/location")
def get_task_location(task_id: str, request: Request):
    _managed_task(task_id, require_user(request))
    return task_service.get_task_location(task_id)


@router.patch("/{task_id}")
def update_task(task_id: str, request: Request, payload: dict):
    user = require_user(request)
    _managed_task(task_id, user)
    return _ok(task_service.update_task(task_id, payload, user["id"], _display_name(user)))


@router.put("/{task_id}/status")
def update_status(task_id: str, request: Request, payload: dict):
    user = require_user(request)
    task = _task(task_id)
    if not _is_participant(task, user):
        _managed_task(task_id, user)
    (status,) = required(payload, "status")
    if not task_service.update_task_status(task_id, status):
        raise HTTPException(400, "Invalid status")
    return {"ok": True}


@router.put("/{task_id}/priority")
def update_priority(task_id: str, request: Request, payload: dict):
    _managed_task(task_id, require_user(request))
    (priority,) = required(payload, "priority")
    if not task_service.update_task_priority(task_id, priority):
        raise HTTPException(400, "Invalid priority")
    return {"ok": True}


@router.post("/{task_id}/comments", status_code=201)
def add_comment(task_id: str, request: Request, payload: dict):
    user = require_user(request)
    (text,) = required(payload, "text")
    return _ok(task_service.add_comment_to_task(task_id, text, user["id"], _display_name(user)))


@router.post("/{task_id}/publish")
def toggle_publish(task_id: str, request: Request):
    user = require_user(request)
    _managed_task(task_id, user)
    if not task_service.toggle_task_publish_status(task_id, user["id"], _display_name(user)):
        raise HTTPException(400, "Task cannot be published")
    return {"ok": True, "isPublished": _task(task_id).get("isPublished")}


@router.post("/{task_id}/auto-post")
def toggle_auto_post(task_id: str, request: Request):
    user = require_user(request)
    _managed_task(task_id, user)
    _ok(task_service.toggle_auto_post_to_timeline(task_id, user["id"], _display_name(user)))
    return {"ok": True, "autoPostToTimeline": _task(task_id).get("autoPostToTimeline")}


@router.post("/{task_id}/reassign")
def reassign(task_id: str, request: Request, payload: dict):
    user = require_user(request)
    _managed_task(task_id, user)
    return _ok(task_service.reassign_task(task_id, payload.get("reason") or "", user["id"], _display_name(user)))


@router.post("/{task_id}/complete")
def complete(task_id: str, request: Request):
    user = require_user(request)
    _managed_task(task_id, user)
    return _ok(task_service.mark_task_completed(task_id, user["id"], _display_name(user)))


@router.post("/{task_id}/recurring/toggle")
def toggle_recurring(task_id: str, request: Request):
    user = require_user(request)
    _managed_task(task_id, user)
    if not recurring_service.toggle_recurring_task_completion(task_id, user["id"], _display_name(user)):
        raise HTTPException(400, "Task is not recurring")
    return _task(task_id)


# -------------------------------------- applications --------------------------------------
@router.post("/{task_id}/applications", status_code=201)
def apply(task_id: str, request: Request, payload: dict):
    user = require_user(request)
    if user.get("userType") != UserType.STUDENT.value:
        raise HTTPException(403, "Only students can apply")
    task = _task(task_id)
    if not task.get("isPublished"):
        raise HTTPException(404, "Task not found")
    if is_user_in_list(UserListType.BANNED.value, user["id"]):
        raise HTTPException(403, "Account is banned")
    if task_service.get_student_application(task_id, user["id"]):
        raise HTTPException(409, "Already applied")
    allowed, reason = student_service.can_student_apply_for_task(user["id"])
    if not allowed:
        raise HTTPException(403, reason)
    task_service.submit_task_application(task_id, user["id"], _display_name(user), user.get("email", ""), payload.get("note") or "")
    GamificationService(user["id"]).unlock_achievement("first_application")
    return task_service.get_student_application(task_id, user["id"])


@router.get("/{task_id}/applications/me")
def my_application(task_id: str, request: Request):
    user = require_user(request)
    application = task_service.get_student_application(task_id, user["id"])
    if not application:
        raise HTTPException(404, "No application")
    return application


@router.patch("/{task_id}/applications/{application_id}")
def update_application(task_id: str, application_id: str, request: Request, payload: dict):
    user = require_user(request)
    _managed_task(task_id, user)
    (status,) = required(payload, "status")
    if not task_service.update_application_status(task_id, application_id, status, user["id"], _display_name(user)):
        raise HTTPException(400, "Application could not be updated")
    return {"ok": True}


# -------------------------------------- timeline --------------------------------------
@router.post("/{task_id}/timeline", status_code=201)
def post_timeline(task_id: str, request: Request, payload: dict):
    user = require_user(request)
    task = _task(task_id)
    if not _is_participant(task, user):
        _managed_task(task_id, user)
    (content,) = required(payload, "content")
    user_type = user.get("userType") if user.get("userType") in ("employer", "student") else "employer"
    return _ok(task_service.add_timeline_message(task_id, content, user["id"], _display_name(user), user_type))


def _own_message(task: dict, message_id: str, user: dict) -> None:
    for message in task.get("timelineMessages") or []:
        if message.get("id") == message_id:
            if message.get("userId") != user["id"] and user.get("userType") != UserType.ADMIN.value:
                raise HTTPException(403, "forbidden")
            return
    raise HTTPException(404, "Message not found")


@router.patch("/{task_id}/timeline/{message_id}")
def edit_timeline(task_id: str, message_id: str, request: Request, payload: dict):
    user = require_user(request)
    _own_message(_task(task_id), message_id, user)
    (content,) = required(payload, "content")
    return _ok(task_service.edit_timeline_message(task_id, message_id, content), "Message not found")


@router.delete("/{task_id}/timeline/{message_id}")
def delete_timeline(task_id: str, message_id: str, request: Request):
    user = require_user(request)
    _own_message(_task(task_id), message_id, user)
    return _ok(task_service.delete_timeline_message(task_id, message_id), "Message not found")


# -------------------------------------- reviews --------------------------------------
@router.post("/{task_id}/reviews", status_code=201)
def submit_review(task_id: str, request: Request, payload: dict):
    user = require_user(request)
    task = _task(task_id)
    reviewer_type = user.get("userType")
    if reviewer_type not in review_service.REVIEWER_TYPES:
        raise HTTPException(403, "forbidden")
    if reviewer_type == UserType.STUDENT.value and not _is_participant(task, user):
        raise HTTPException(403, "forbidden")
    if reviewer_type == UserType.EMPLOYER.value:
        _managed_task(task_id, user)
    recipient_id, rating = required(payload, "recipientId", "rating")
    try:
        rating = int(rating)
    except (TypeError, ValueError):
        raise HTTPException(400, "rating must be an integer")
    if not 1 <= rating <= 5:
        raise HTTPException(400, "rating must be between 1 and 5")
    done = review_service.submit_task_review(
        task_id,
        user["id"],
        _display_name(user),
        reviewer_type,
        recipient_id,
        payload.get("recipientName") or "",
        rating,
        payload.get("comment") or "",
    )
    return _ok(done)
