"""
Task operations over the nested project collection.

Tasks live inside ``project.sprints[].campaigns[].tasks[]``. Every mutation
locates the task by walking that tree, changes it in place and writes the whole
project collection back. A missing task yields ``False``/``None``.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterator, Optional

from kushl.core.utils import generate_id, now_ms
from kushl.domain.constants import (
    LIBRARY_STATUSES,
    ApplicationStatus,
    TaskPriority,
    TaskStatus,
)
from kushl.services.project_service import (
    find_campaign,
    find_sprint,
    get_project,
    iter_campaigns,
    new_campaign,
    new_sprint,
    projects,
)

logger = logging.getLogger(__name__)

TaskMutation = Callable[[dict, dict], Optional[bool]]


def iter_tasks(items: list[dict]) -> Iterator[tuple[dict, dict, dict, dict]]:
    """Yield (project, sprint, campaign, task) for every stored task."""
    for project in items:
        for sprint, campaign in iter_campaigns(project):
            for task in campaign.get("tasks") or []:
                yield project, sprint, campaign, task


def mutate_task(task_id: str, mutation: TaskMutation, action: str) -> bool:
    """
    Apply ``mutation(task, project)`` to the first task with ``task_id`` and persist.

    A mutation returning ``False`` aborts without writing.
    """
    try:
        with projects.locked():
            items = projects.all()
            for project, _sprint, _campaign, task in iter_tasks(items):
                if task.get("id") != task_id:
                    continue
                if mutation(task, project) is False:
                    return False
                projects.save(items)
                return True
    except (OSError, TypeError, ValueError, KeyError) as exc:
        logger.error("Error %s: %s", action, exc)
    return False


def timeline_message(
    user_id: str,
    user_name: str,
    content: str,
    *,
    user_type: str = "employer",
    system: bool = True,
    timestamp: int | None = None,
) -> dict:
    return {
        "id": generate_id(),
        "userId": user_id,
        "userName": user_name,
        "userType": user_type,
        "content": content,
        "timestamp": timestamp if timestamp is not None else now_ms(),
        "isSystemMessage": system,
    }


def edit_entry(user_id: str, user_name: str, action: str, timestamp: int | None = None) -> dict:
    return {
        "userId": user_id,
        "userName": user_name,
        "timestamp": timestamp if timestamp is not None else now_ms(),
        "action": action,
    }


# ----------------------------------------------------------------- lookups
def get_task_by_id(task_id: str) -> Optional[dict]:
    for _project, _sprint, _campaign, task in iter_tasks(projects.all()):
        if task.get("id") == task_id:
            return task
    return None


def get_task_location(task_id: str) -> dict:
    """Names and ids of the project, sprint and campaign holding the task."""
    for project, sprint, campaign, task in iter_tasks(projects.all()):
        if task.get("id") == task_id:
            return {
                "projectId": project.get("id"),
                "projectName": project.get("name"),
                "sprintId": sprint.get("id"),
                "sprintName": sprint.get("name"),
                "campaignId": campaign.get("id"),
                "campaignName": campaign.get("name"),
            }
    return {}


PRIVATE_TASK_FIELDS = frozenset({"applications", "credentials", "assignment", "timelineMessages"})


def public_task(task: Optional[dict]) -> Optional[dict]:
    """Task without applicant data, credentials, the assignment or the timeline."""
    if task is None:
        return None
    return {k: v for k, v in task.items() if k not in PRIVATE_TASK_FIELDS}


def get_all_tasks(project: Optional[dict]) -> list[dict]:
    if not project:
        return []
    tasks: list[dict] = []
    for _sprint, campaign in iter_campaigns(project):
        tasks.extend(campaign.get("tasks") or [])
    return tasks


def get_all_published_tasks() -> list[dict]:
    return [task for _p, _s, _c, task in iter_tasks(projects.all()) if task.get("isPublished")]


def get_tasks_by_type(project_id: str, task_type: str) -> list[dict]:
    return [task for task in get_all_tasks(get_project(project_id)) if task.get("status") == task_type]


def filter_tasks(
    tasks: list[dict],
    query: str = "",
    status: str | None = None,
    priority: str | None = None,
) -> list[dict]:
    """Case-insensitive substring search on title/description plus exact status/priority."""
    needle = (query or "").strip().lower()
    result = []
    for task in tasks:
        if status and task.get("status") != status:
            continue
        if priority and task.get("priority") != priority:
            continue
        if needle:
            haystack = f"{task.get('title') or ''}\n{task.get('description') or ''}".lower()
            if needle not in haystack:
                continue
        result.append(task)
    return result


# ----------------------------------------------------------------- creation
def add_task_to_campaign(project_id: str, sprint_id: str, campaign_id: str, task: dict) -> bool:
    try:
        with projects.locked():
            items = projects.all()
            project = next((p for p in items if p.get("id") == project_id), None)
            if project is None:
                logger.error("Project not found: %s", project_id)
                return False
            sprint = find_sprint(project, sprint_id)
            if sprint is None:
                logger.error("Sprint not found: %s", sprint_id)
                return False
            campaign = find_campaign(sprint, campaign_id)
            if campaign is None:
                logger.error("Campaign not found: %s", campaign_id)
                return False
            tasks = campaign.setdefault("tasks", [])
            if any(t.get("id") == task.get("id") for t in tasks):
                logger.error("Task %s already exists in campaign %s", task.get("id"), campaign_id)
                return False
            tasks.append(task)
            project["updatedAt"] = now_ms()
            projects.save(items)
    except (OSError, TypeError, ValueError) as exc:
        logger.error("Error adding task to campaign: %s", exc)
        return False
    logger.info("Task added: %s", task.get("title"))
    return True


def create_task(
    project_id: str,
    sprint_id: str,
    campaign_id: str,
    title: str,
    description: str = "",
    status: str = TaskStatus.TO_DO.value,
    priority: str = TaskPriority.MEDIUM.value,
    due_date: int | None = None,
    user_id: str = "",
    user_name: str = "",
    recurring: str | None = None,
    extra: dict | None = None,
) -> Optional[str]:
    """
    Create a task in the given campaign and return its id, or None.

    ``extra`` carries optional task fields (price, category, requirements...).
    """
    try:
        status_value = TaskStatus(status).value
        priority_value = TaskPriority(priority).value
    except ValueError as exc:
        logger.error("Error creating task: %s", exc)
        return None
    now = now_ms()
    task = {
        **(extra or {}),
        "id": generate_id(),
        "title": title,
        "description": description,
        "status": status_value,
        "priority": priority_value,
        "campaignId": campaign_id,
        "createdAt": now,
        "updatedAt": now,
        "dueDate": due_date,
        "isPublished": False,
        "createdBy": user_id,
        "creatorName": user_name,
        "comments": [],
        "editHistory": [edit_entry(user_id, user_name, "Created task", now)],
    }
    if recurring:
        task["recurrenceType"] = recurring
    if add_task_to_campaign(project_id, sprint_id, campaign_id, task):
        return task["id"]
    return None


def _library_payload(task_type: str, initial: dict) -> dict:
    if task_type == TaskStatus.CHECKLIST_LIBRARY.value:
        return {"checklistItems": initial.get("items") or [], "category": initial.get("category")}
    if task_type == TaskStatus.CREDENTIALS_LIBRARY.value:
        return {"credentials": initial.get("credentials") or []}
    if task_type == TaskStatus.BRAND_BRIEF.value:
        return {
            "brandBrief": {
                "brandName": initial.get("brandName") or "",
                "clientName": initial.get("clientName") or "",
                "brandColors": initial.get("brandColors") or [],
                "brandFonts": initial.get("brandFonts") or [],
                "brandVoice": initial.get("brandVoice") or "",
                "targetAudience": initial.get("targetAudience") or "",
                "keyMessages": initial.get("keyMessages") or [],
            }
        }
    return {"resources": initial.get("resources") or [], "category": initial.get("category")}


def create_special_task(
    project_id: str,
    sprint_id: str | None,
    campaign_id: str | None,
    task_type: str,
    title: str,
    description: str,
    user_id: str,
    user_name: str,
    initial_data: dict | None = None,
) -> Optional[str]:
    """
    Store a library pseudo-task (checklist, credentials, brand brief, resources).

    Falls back to the first sprint/campaign of the project, creating a
    "Default Sprint" and a "Library Items" campaign when none exist.
    """
    if task_type not in LIBRARY_STATUSES:
        logger.error("Not a library task type: %s", task_type)
        return None
    label = task_type.replace("_", " ", 1)
    try:
        with projects.locked():
            items = projects.all()
            project = next((p for p in items if p.get("id") == project_id), None)
            if project is None:
                logger.error("Project not found: %s", project_id)
                return None
            sprints = project.setdefault("sprints", [])
            sprint = find_sprint(project, sprint_id) if sprint_id else None
            campaign = find_campaign(sprint, campaign_id) if sprint and campaign_id else None
            if campaign is None:
                if sprint is None and sprints:
                    sprint = sprints[0]
                if sprint is not None and sprint.get("campaigns"):
                    campaign = sprint["campaigns"][0]
            if campaign is None:
                if sprint is None:
                    sprint = new_sprint(project_id, "Default Sprint", "Automatically created sprint for library items")
                    sprints.append(sprint)
                campaign = new_campaign(sprint["id"], "Library Items", "Automatically created campaign for library items")
                sprint.setdefault("campaigns", []).append(campaign)

            now = now_ms()
            task = {
                "id": generate_id(),
                "title": title,
                "description": description,
                "status": task_type,
                "priority": TaskPriority.MEDIUM.value,
                "campaignId": campaign["id"],
                "createdAt": now,
                "updatedAt": now,
                "isPublished": False,
                "editHistory": [edit_entry(user_id, user_name, f"Created {label}", now)],
                "timelineMessages": [timeline_message(user_id, user_name, f'{label} "{title}" was created', timestamp=now)],
                "comments": [],
            }
            task.update(_library_payload(task_type, initial_data or {}))
            campaign.setdefault("tasks", []).append(task)
            project["updatedAt"] = now
            projects.save(items)
            return task["id"]
    except (OSError, TypeError, ValueError) as exc:
        logger.error("Error creating %s task: %s", task_type, exc)
        return None


# ----------------------------------------------------------------- field updates
def update_task_status(task_id: str, status: str) -> bool:
    """Set any status on the task; statuses have no enforced transition graph."""
    try:
        value = TaskStatus(status).value
    except ValueError:
        logger.error("Unknown task status: %s", status)
        return False

    def _apply(task: dict, _project: dict) -> None:
        task["status"] = value
        task["updatedAt"] = now_ms()

    return mutate_task(task_id, _apply, "updating task status")


def update_task_priority(task_id: str, priority: str) -> bool:
    try:
        value = TaskPriority(priority).value
    except ValueError:
        logger.error("Unknown task priority: %s", priority)
        return False

    def _apply(task: dict, _project: dict) -> None:
        task["priority"] = value
        task["updatedAt"] = now_ms()

    return mutate_task(task_id, _apply, "updating task priority")


def update_task(task_id: str, updates: dict, user_id: str | None = None, user_name: str | None = None) -> bool:
    """Shallow-merge ``updates`` into the task. The id is never overwritten."""
    changes = {k: v for k, v in (updates or {}).items() if k != "id"}

    def _apply(task: dict, _project: dict) -> None:
        task.update(changes)
        task["updatedAt"] = now_ms()
        if user_id:
            task.setdefault("editHistory", []).append(
                edit_entry(user_id, user_name or "", "Updated " + ", ".join(sorted(changes)) if changes else "Updated task")
            )

    return mutate_task(task_id, _apply, "updating task")


def add_comment_to_task(task_id: str, text: str, user_id: str, user_name: str) -> bool:
    def _apply(task: dict, _project: dict) -> None:
        now = now_ms()
        task.setdefault("comments", []).append(
            {"id": generate_id(), "userId": user_id, "userName": user_name, "text": text, "createdAt": now}
        )
        task["updatedAt"] = now

    return mutate_task(task_id, _apply, "adding comment to task")


def toggle_task_publish_status(task_id: str, user_id: str = "", user_name: str = "") -> bool:
    def _apply(task: dict, _project: dict) -> Optional[bool]:
        if task.get("status") in LIBRARY_STATUSES:
            logger.error("Library task %s cannot be published", task_id)
            return False
        now = now_ms()
        task["isPublished"] = not task.get("isPublished")
        if task["isPublished"]:
            task["publishedAt"] = now
        task["updatedAt"] = now
        if user_id:
            action = "Published task" if task["isPublished"] else "Unpublished task"
            task.setdefault("editHistory", []).append(edit_entry(user_id, user_name, action, now))
        return None

    return mutate_task(task_id, _apply, "toggling task publish status")


def toggle_auto_post_to_timeline(task_id: str, user_id: str = "", user_name: str = "") -> bool:
    def _apply(task: dict, _project: dict) -> None:
        now = now_ms()
        task["autoPostToTimeline"] = not task.get("autoPostToTimeline")
        task["updatedAt"] = now
        if user_id:
            state = "on" if task["autoPostToTimeline"] else "off"
            task.setdefault("editHistory", []).append(
                edit_entry(user_id, user_name, f"Turned auto-post to timeline {state}", now)
            )

    return mutate_task(task_id, _apply, "toggling auto-post to timeline")


def reassign_task(task_id: str, reason: str, user_id: str, user_name: str) -> bool:
    """Drop the current assignee and put the task back on the marketplace."""

    def _apply(task: dict, _project: dict) -> None:
        now = now_ms()
        task["assigneeId"] = None
        if task.get("assignment"):
            task["assignment"]["status"] = "reassigned"
        task["isPublished"] = True
        task["publishedAt"] = now
        task["updatedAt"] = now
        task.setdefault("editHistory", []).append(edit_entry(user_id, user_name, f"Reassigned task: {reason}", now))

    return mutate_task(task_id, _apply, "reassigning task")


def mark_task_completed(task_id: str, user_id: str, user_name: str) -> bool:
    def _apply(task: dict, _project: dict) -> None:
        now = now_ms()
        task["status"] = TaskStatus.COMPLETED.value
        task["completedAt"] = now
        task["updatedAt"] = now
        if task.get("assignment") and task["assignment"].get("status") == "active":
            task["assignment"]["status"] = "completed"

    return mutate_task(task_id, _apply, "marking task as completed")


# ----------------------------------------------------------------- timeline
def add_timeline_message(
    task_id: str,
    content: str,
    user_id: str,
    user_name: str,
    user_type: str = "employer",
    is_system_message: bool = False,
) -> bool:
    def _apply(task: dict, _project: dict) -> None:
        message = timeline_message(user_id, user_name, content, user_type=user_type, system=is_system_message)
        task.setdefault("timelineMessages", []).append(message)
        task["updatedAt"] = message["timestamp"]

    return mutate_task(task_id, _apply, "adding timeline message")


def _change_message(task_id: str, message_id: str, changes: Callable[[], dict], action: str) -> bool:
    def _apply(task: dict, _project: dict) -> Optional[bool]:
        for message in task.get("timelineMessages") or []:
            if message.get("id") == message_id:
                message.update(changes())
                task["updatedAt"] = now_ms()
                return None
        return False

    return mutate_task(task_id, _apply, action)


def edit_timeline_message(task_id: str, message_id: str, content: str) -> bool:
    return _change_message(
        task_id,
        message_id,
        lambda: {"content": content, "edited": True, "editedAt": now_ms()},
        "editing timeline message",
    )


def delete_timeline_message(task_id: str, message_id: str) -> bool:
    """Soft delete: the message stays in place with its content replaced."""
    return _change_message(
        task_id,
        message_id,
        lambda: {"content": "This message was deleted", "isDeleted": True, "deletedAt": now_ms()},
        "deleting timeline message",
    )


# ----------------------------------------------------------------- applications
def submit_task_application(task_id: str, student_id: str, student_name: str, student_email: str, note: str) -> bool:
    def _apply(task: dict, _project: dict) -> None:
        now = now_ms()
        task.setdefault("applications", []).append(
            {
                "id": generate_id(),
                "studentId": student_id,
                "studentName": student_name,
                "studentEmail": student_email,
                "note": note,
                "createdAt": now,
                "updatedAt": now,
                "status": ApplicationStatus.PENDING.value,
            }
        )
        task["updatedAt"] = now

    return mutate_task(task_id, _apply, "submitting task application")


def get_student_application(task_id: str, student_id: str) -> Optional[dict]:
    task = get_task_by_id(task_id)
    if not task:
        return None
    for application in task.get("applications") or []:
        if application.get("studentId") == student_id:
            return application
    return None


def update_application_status(
    task_id: str,
    application_id: str,
    new_status: str,
    user_id: str | None = None,
    user_name: str | None = None,
) -> bool:
    """Change an application's status; approving assigns the student to the task."""
    try:
        status = ApplicationStatus(new_status).value
    except ValueError:
        logger.error("Unknown application status: %s", new_status)
        return False

    def _apply(task: dict, _project: dict) -> Optional[bool]:
        application = next((a for a in task.get("applications") or [] if a.get("id") == application_id), None)
        if application is None:
            return False
        now = now_ms()
        application["status"] = status
        application["updatedAt"] = now
        if status == ApplicationStatus.APPROVED.value:
            task["assigneeId"] = application["studentId"]
            task["assignment"] = {
                "studentId": application["studentId"],
                "studentEmail": application.get("studentEmail", ""),
                "studentName": application.get("studentName", ""),
                "assignedAt": now,
                "status": "active",
            }
            task["detailsPostedToTimeline"] = False
            task.setdefault("timelineMessages", []).append(
                timeline_message(
                    user_id or "system",
                    user_name or "System",
                    f"{application.get('studentName', '')} has been assigned to this task",
                    timestamp=now,
                )
            )
        task["updatedAt"] = now
        return None

    return mutate_task(task_id, _apply, "updating application status")
