from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse

from kushl.domain.constants import list_key
from kushl.routers.deps import require_admin, required
from kushl.services import (
    backup_service,
    notification_service,
    payment_service,
    sop_service,
    user_list_service,
    user_service,
)
from kushl.services.auth_service import public_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _list_type(list_type: str) -> str:
    try:
        list_key(list_type)
    except ValueError:
        raise HTTPException(404, "Unknown list")
    return list_type


# -------------------------------------- users --------------------------------------
@router.get("/users")
def list_users(request: Request, q: str = "", user_type: str | None = None):
    require_admin(request, "manageUsers")
    if user_type:
        try:
            found = user_service.get_users_by_type(user_type)
        except ValueError:
            raise HTTPException(400, "Unknown user type")
        if q:
            ids = {u.get("id") for u in user_service.search_users(q)}
            found = [u for u in found if u.get("id") in ids]
    else:
        found = user_service.search_users(q)
    return [public_user(u) for u in found]


@router.put("/users/{user_id}/status")
def set_user_status(user_id: str, request: Request, payload: dict):
    require_admin(request, "manageUsers")
    (status,) = required(payload, "status")
    try:
        updated = user_service.update_user_status(user_id, status)
    except ValueError:
        raise HTTPException(400, "Unknown status")
    if not updated:
        raise HTTPException(404, "User not found")
    return {"ok": True}


@router.post("/users/{user_id}/reset-password")
def reset_password(user_id: str, request: Request):
    require_admin(request, "manageUsers")
    return {"ok": user_service.reset_user_password(user_id)}


@router.get("/users/{user_id}/list-effects")
def list_effects(user_id: str, request: Request):
    require_admin(request, "manageUsers")
    return user_list_service.apply_user_list_effects(user_id)


@router.post("/admins", status_code=201)
def create_admin(request: Request, payload: dict):
    require_admin(request, "manageSettings")
    full_name, email, whatsapp = required(payload, "fullName", "email", "whatsappNumber")
    if user_service.find_user_by_email(email):
        raise HTTPException(409, "Email already registered")
    admin = user_service.create_admin_user(full_name, email, whatsapp, payload.get("adminLevel") or "support")
    user_service.add_user(admin)
    return admin


# -------------------------------------- user lists --------------------------------------
@router.get("/user-lists/{list_type}")
def get_list(list_type: str, request: Request, q: str = ""):
    require_admin(request, "manageUsers")
    return user_list_service.search_users_in_list(_list_type(list_type), q)


@router.post("/user-lists/{list_type}", status_code=201)
def add_to_list(list_type: str, request: Request, payload: dict):
    admin = require_admin(request, "manageUsers")
    user_id, username, email = required(payload, "userId", "username", "email")
    entry = {
        "userId": user_id,
        "username": username,
        "email": email,
        "addedBy": admin["id"],
        "reason": payload.get("reason") or "",
    }
    if not user_list_service.add_user_to_list(_list_type(list_type), entry):
        raise HTTPException(409, "User already in list")
    return {"ok": True}


@router.delete("/user-lists/{list_type}/{user_id}")
def remove_from_list(list_type: str, user_id: str, request: Request):
    require_admin(request, "manageUsers")
    if not user_list_service.remove_user_from_list(_list_type(list_type), user_id):
        raise HTTPException(404, "User not in list")
    return {"ok": True}


@router.post("/user-lists/{list_type}/import")
async def import_list(list_type: str, request: Request):
    admin = require_admin(request, "manageUsers")
    body = (await request.body()).decode("utf-8", errors="replace")
    added = user_list_service.import_users_to_list(_list_type(list_type), body, admin["id"])
    return {"ok": True, "added": added}


@router.get("/user-lists/{list_type}/export", response_class=PlainTextResponse)
def export_list(list_type: str, request: Request):
    require_admin(request, "manageUsers")
    return PlainTextResponse(user_list_service.export_users_from_list(_list_type(list_type)), media_type="text/csv")


# -------------------------------------- payments --------------------------------------
@router.get("/payments")
def list_payments(request: Request, user_id: str | None = None):
    require_admin(request, "managePayments")
    if user_id:
        return payment_service.get_payments_by_user_id(user_id)
    return payment_service.get_payments()


@router.post("/payments", status_code=201)
def create_payment(request: Request, payload: dict):
    require_admin(request, "managePayments")
    task_id, student_id, employer_id, amount = required(payload, "taskId", "studentId", "employerId", "amount")
    try:
        amount = float(amount)
    except (TypeError, ValueError):
        raise HTTPException(400, "amount must be a number")
    payment = payment_service.create_payment(
        task_id, student_id, employer_id, amount, payload.get("status") or "pending", payload.get("message")
    )
    if payment is None:
        raise HTTPException(400, "Payment could not be created")
    return payment


@router.put("/payments/{payment_id}/status")
def set_payment_status(payment_id: str, request: Request, payload: dict):
    require_admin(request, "managePayments")
    (status,) = required(payload, "status")
    if not payment_service.update_payment_status(payment_id, status):
        raise HTTPException(400, "Payment could not be updated")
    return {"ok": True}


# -------------------------------------- SOPs --------------------------------------
@router.get("/sops")
def list_sops(request: Request, category: str | None = None):
    require_admin(request, "manageContent")
    if category:
        return sop_service.get_sops_by_category(category)
    return sop_service.get_all_sops()


@router.get("/sops/coverage")
def sop_coverage(request: Request):
    require_admin(request, "manageContent")
    return {
        "categories": sop_service.get_available_categories(),
        "withSops": sop_service.get_categories_with_sops(),
        "withoutSops": sop_service.get_categories_without_sops(),
    }


@router.post("/sops", status_code=201)
def add_sop(request: Request, payload: dict):
    admin = require_admin(request, "manageContent")
    category, title, content = required(payload, "category", "title", "content")
    return sop_service.add_sop(category, title, content, admin["id"], admin.get("fullName") or admin.get("email") or "")


@router.put("/sops/{sop_id}")
def update_sop(sop_id: str, request: Request, payload: dict):
    require_admin(request, "manageContent")
    current = next((s for s in sop_service.get_all_sops() if s.get("id") == sop_id), None)
    if current is None:
        raise HTTPException(404, "SOP not found")
    changes = {k: v for k, v in payload.items() if k in {"category", "title", "content"}}
    sop_service.update_sop({**current, **changes})
    return {"ok": True}


@router.delete("/sops/{sop_id}")
def delete_sop(sop_id: str, request: Request):
    require_admin(request, "manageContent")
    if not sop_service.delete_sop(sop_id):
        raise HTTPException(404, "SOP not found")
    return {"ok": True}


# -------------------------------------- notifications --------------------------------------
@router.get("/notifications")
def list_notifications(request: Request):
    require_admin(request, "manageContent")
    return notification_service.get_notifications()


@router.post("/notifications", status_code=201)
def add_notification(request: Request, payload: dict):
    require_admin(request, "manageContent")
    title, message = required(payload, "title", "message")
    notification = notification_service.add_notification(
        title,
        message,
        payload.get("type") or "info",
        bool(payload.get("showToEmployers", True)),
        bool(payload.get("showToStudents", True)),
        bool(payload.get("showToGuests", False)),
        bool(payload.get("active", True)),
        payload.get("startDate"),
        payload.get("endDate"),
    )
    if notification is None:
        raise HTTPException(400, "Invalid notification")
    return notification


@router.patch("/notifications/{notification_id}")
def update_notification(notification_id: str, request: Request, payload: dict):
    require_admin(request, "manageContent")
    if not notification_service.update_notification(notification_id, payload):
        raise HTTPException(404, "Notification not found")
    return {"ok": True}


@router.delete("/notifications/{notification_id}")
def delete_notification(notification_id: str, request: Request):
    require_admin(request, "manageContent")
    if not notification_service.delete_notification(notification_id):
        raise HTTPException(404, "Notification not found")
    return {"ok": True}


# -------------------------------------- backup --------------------------------------
@router.get("/backup")
def backup(request: Request):
    require_admin(request, "manageSettings")
    return backup_service.backup_data()


@router.post("/restore")
def restore(request: Request, payload: dict):
    admin = require_admin(request, "manageSettings")
    ok, message = backup_service.restore_data(payload)
    if not ok:
        raise HTTPException(400, message)
    logger.info("Backup restored by %s", admin["id"])
    return {"ok": True, "message": message}
