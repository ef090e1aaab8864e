"""
Recurring tasks (daily, weekly, monthly).

A recurring task is never "done"; completing it records a history entry and
schedules the next due date. ``check_and_reset_recurring_tasks`` reopens the
ones whose due date has passed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from kushl.core.utils import DAY_MS, add_months, now_ms
from kushl.domain.constants import RECURRING_STATUSES, TaskStatus
from kushl.services.project_service import projects
from kushl.services.task_service import edit_entry, mutate_task, iter_tasks, timeline_message

logger = logging.getLogger(__name__)


def next_due_date(status: str, from_ms: int) -> int:
    if status == TaskStatus.RECURRING_DAILY.value:
        return from_ms + DAY_MS
    if status == TaskStatus.RECURRING_WEEKLY.value:
        return from_ms + 7 * DAY_MS
    return add_months(from_ms, 1)


def _date_label(value_ms: int) -> str:
    return datetime.fromtimestamp(value_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d")


def toggle_recurring_task_completion(task_id: str, user_id: str, user_name: str) -> bool:
    """
    Flip ``isRecurringCompleted`` on a recurring task.

    Completing pushes a recurrence history entry and sets the next due date.
    Un-completing pops the last entry and restores the previous schedule.
    Timeline messages are posted unless ``autoPostToTimeline`` is explicitly False.
    """

    def _apply(task: dict, _project: dict) -> Optional[bool]:
        if task.get("status") not in RECURRING_STATUSES:
            logger.error("Cannot toggle completion for non-recurring task %s", task_id)
            return False
        now = now_ms()
        completed = not task.get("isRecurringCompleted")
        task["isRecurringCompleted"] = completed
        history = task.setdefault("recurrenceHistory", [])
        if completed:
            due = next_due_date(task["status"], now)
            task["lastCompletedAt"] = now
            task["nextDueDate"] = due
            history.append({"completedAt": now, "completedBy": user_name, "nextDueDate": due})
            action = "Marked recurring task as completed"
            content = f"Marked task as completed. Next due: {_date_label(due)}"
        else:
            if history:
                history.pop()
            if history:
                task["lastCompletedAt"] = history[-1]["completedAt"]
                task["nextDueDate"] = history[-1]["nextDueDate"]
            else:
                task.pop("lastCompletedAt", None)
                task.pop("nextDueDate", None)
            action = "Marked recurring task as incomplete"
            content = "Marked task as incomplete"

        task.setdefault("editHistory", []).append(edit_entry(user_id, user_name, action, now))
        if task.get("autoPostToTimeline") is not False:
            task.setdefault("timelineMessages", []).append(timeline_message(user_id, user_name, content, timestamp=now))
        task["updatedAt"] = now
        return None

    return mutate_task(task_id, _apply, "toggling recurring task completion")


def check_and_reset_recurring_tasks(now: int | None = None) -> int:
    """Reopen completed recurring tasks whose next due date has passed. Returns how many."""
    now = now if now is not None else now_ms()
    reset = 0
    try:
        with projects.locked():
            items = projects.all()
            for _project, _sprint, _campaign, task in iter_tasks(items):
                due = task.get("nextDueDate")
                if (
                    task.get("status") in RECURRING_STATUSES
                    and task.get("isRecurringCompleted")
                    and due
                    and due <= now
                ):
                    task["isRecurringCompleted"] = False
                    task.setdefault("timelineMessages", []).append(
                        timeline_message("system", "System", "Task is due again", timestamp=now)
                    )
                    task["updatedAt"] = now
                    reset += 1
            if reset:
                projects.save(items)
    except (OSError, TypeError, ValueError) as exc:
        logger.error("Error checking and resetting recurring tasks: %s", exc)
        return 0
    if reset:
        logger.info("Reset %d recurring task(s)", reset)
    return reset
