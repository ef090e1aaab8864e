"""Employer and student reviews attached to tasks."""

from __future__ import annotations

import logging
import math

from kushl.core.utils import generate_id, now_ms
from kushl.services.project_service import projects
from kushl.services.task_service import get_task_by_id, iter_tasks, mutate_task

logger = logging.getLogger(__name__)

REVIEWER_TYPES = ("employer", "student")


def _review_field(reviewer_type: str) -> str:
    if reviewer_type not in REVIEWER_TYPES:
        raise ValueError(f"unknown reviewer type: {reviewer_type}")
    return f"{reviewer_type}Review"


def has_user_submitted_review(task_id: str, user_id: str, user_type: str) -> bool:
    task = get_task_by_id(task_id)
    if not task:
        return False
    review = task.get(_review_field(user_type))
    return bool(review) and review.get("reviewerId") == user_id


def submit_task_review(
    task_id: str,
    reviewer_id: str,
    reviewer_name: str,
    reviewer_type: str,
    recipient_id: str,
    recipient_name: str,
    rating: int,
    comment: str,
) -> bool:
    """Store the review on the task; a second review from the same side replaces the first."""
    field = _review_field(reviewer_type)

    def _apply(task: dict, _project: dict) -> None:
        task[field] = {
            "id": generate_id(),
            "reviewerId": reviewer_id,
            "reviewerName": reviewer_name,
            "reviewerType": reviewer_type,
            "recipientId": recipient_id,
            "recipientName": recipient_name,
            "taskId": task_id,
            "taskTitle": task.get("title"),
            "rating": rating,
            "comment": comment,
            "createdAt": now_ms(),
        }

    return mutate_task(task_id, _apply, "submitting review")


def get_all_reviews() -> list[dict]:
    reviews = []
    for _project, _sprint, _campaign, task in iter_tasks(projects.all()):
        for field in ("employerReview", "studentReview"):
            if task.get(field):
                reviews.append({**task[field], "taskTitle": task.get("title"), "taskId": task.get("id")})
    return reviews


def get_best_reviews(reviewer_type: str, limit: int = 6, page: int = 1) -> dict:
    """
    Highest rated reviews by one side, newest first among equal ratings.

    ``page`` is clamped into ``1..totalPages`` and ``totalPages`` is at least 1.
    """
    limit = max(1, limit)
    matching = [r for r in get_all_reviews() if r.get("reviewerType") == reviewer_type]
    matching.sort(key=lambda r: (r.get("rating") or 0, r.get("createdAt") or 0), reverse=True)

    total_pages = max(1, math.ceil(len(matching) / limit))
    current = min(max(1, page), total_pages)
    start = (current - 1) * limit
    return {
        "reviews": matching[start:start + limit],
        "totalPages": total_pages,
        "currentPage": current,
    }
