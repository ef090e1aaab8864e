"""
Student work history and the concurrent-task limit.

A student may hold a limited number of unfinished assignments at once. The
limit grows with completed tasks and with net earnings.
"""

from __future__ import annotations

import logging

from kushl.domain.constants import TaskStatus
from kushl.services.payment_service import calculate_student_earnings
from kushl.services.project_service import projects
from kushl.services.task_service import iter_tasks

logger = logging.getLogger(__name__)

# (threshold, limit) pairs; the highest satisfied threshold wins
COMPLETED_TASK_STEPS = ((10, 2), (25, 3), (50, 4))
EARNING_STEPS = ((10_000, 2), (25_000, 3), (50_000, 4), (100_000, 5), (250_000, 6), (500_000, 7))


def _assigned_to(task: dict, student_id: str) -> bool:
    assignment = task.get("assignment") or {}
    return task.get("assigneeId") == student_id or assignment.get("studentId") == student_id


def get_student_completed_tasks(student_id: str) -> list[dict]:
    """Completed tasks of the student, annotated with their project and category."""
    completed = []
    for project, _sprint, _campaign, task in iter_tasks(projects.all()):
        if task.get("status") == TaskStatus.COMPLETED.value and _assigned_to(task, student_id):
            completed.append(
                {
                    **task,
                    "projectName": project.get("name"),
                    "projectId": project.get("id"),
                    "ownerId": project.get("ownerId"),
                    "category": task.get("category") or project.get("category") or "General",
                }
            )
    return completed


def _price(task: dict) -> float:
    try:
        return float(task.get("price") or 0)
    except (TypeError, ValueError):
        return 0.0


def get_student_total_earnings(student_id: str) -> float:
    """Gross price of every completed task."""
    return sum(_price(task) for task in get_student_completed_tasks(student_id))


def get_student_net_earnings(student_id: str) -> float:
    return sum(calculate_student_earnings(_price(task)) for task in get_student_completed_tasks(student_id))


def get_student_task_categories(student_id: str) -> dict[str, int]:
    categories: dict[str, int] = {}
    for task in get_student_completed_tasks(student_id):
        category = task["category"]
        categories[category] = categories.get(category, 0) + 1
    return categories


def get_student_employers(student_id: str) -> list[str]:
    employers: list[str] = []
    for task in get_student_completed_tasks(student_id):
        owner = task.get("ownerId")
        if owner and owner not in employers:
            employers.append(owner)
    return employers


def calculate_student_task_limit(completed_count: int, total_earnings: float) -> int:
    limit = 1
    for threshold, value in COMPLETED_TASK_STEPS:
        if completed_count >= threshold:
            limit = value
    for threshold, value in EARNING_STEPS:
        if total_earnings >= threshold:
            limit = max(limit, value)
    return limit


def can_student_apply_for_task(student_id: str) -> tuple[bool, str | None]:
    active = 0
    for _project, _sprint, _campaign, task in iter_tasks(projects.all()):
        assignment = task.get("assignment") or {}
        if assignment.get("studentId") == student_id and task.get("status") != TaskStatus.COMPLETED.value:
            active += 1

    completed = get_student_completed_tasks(student_id)
    limit = calculate_student_task_limit(len(completed), get_student_net_earnings(student_id))
    if active >= limit:
        return False, (
            f"You can only work on {limit} task(s) at a time. "
            "Complete your current tasks to unlock more slots."
        )
    return True, None
