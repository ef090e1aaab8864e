"""
Read-only views of the caller's gamification state and work stats.

Achievement progress only moves on server events (login, first application,
profile completion), never on client input.
"""
from __future__ import annotations

from fastapi import APIRouter, Request

from kushl.routers.deps import require_user
from kushl.services import student_service
from kushl.services.gamification_service import GamificationService

router = APIRouter(prefix="/me", tags=["me"])


@router.get("/gamification")
def gamification(request: Request):
    user = require_user(request)
    return GamificationService(user["id"]).snapshot()


@router.get("/stats")
def student_stats(request: Request):
    user = require_user(request)
    completed = student_service.get_student_completed_tasks(user["id"])
    net = student_service.get_student_net_earnings(user["id"])
    can_apply, reason = student_service.can_student_apply_for_task(user["id"])
    return {
        "completedTasks": len(completed),
        "totalEarnings": student_service.get_student_total_earnings(user["id"]),
        "netEarnings": net,
        "categories": student_service.get_student_task_categories(user["id"]),
        "employers": student_service.get_student_employers(user["id"]),
        "taskLimit": student_service.calculate_student_task_limit(len(completed), net),
        "canApply": can_apply,
        "reason": reason,
    }
