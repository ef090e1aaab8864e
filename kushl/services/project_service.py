"""
Projects and their nested sprints and campaigns, stored under ``kushl_projects``.

A project owns its sprints, a sprint owns its campaigns and a campaign owns its
tasks. Nested records have no identity outside their parent array, so every
change rewrites the whole project collection.
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from kushl.core.utils import DAY_MS, generate_id, now_ms
from kushl.domain.constants import DEFAULT_PROJECT_KEY, PROJECTS_KEY
from kushl.repositories.collection import JsonCollection

logger = logging.getLogger(__name__)

projects = JsonCollection(PROJECTS_KEY)

DEFAULT_WINDOW_MS = 30 * DAY_MS


def get_projects(owner_id: str = "all") -> list[dict]:
    """All projects, or only those owned by ``owner_id``."""
    items = projects.all()
    if owner_id == "all":
        return items
    return [p for p in items if p.get("ownerId") == owner_id]


def save_projects(items: list[dict]) -> None:
    try:
        projects.save(items)
    except (OSError, TypeError, ValueError) as exc:
        logger.error("Error saving projects: %s", exc)


def get_project(project_id: str) -> Optional[dict]:
    if not project_id:
        return None
    return projects.find(project_id)


def add_project(project: dict) -> None:
    projects.append(project)


def update_project(updated_project: dict) -> bool:
    if not projects.replace(updated_project):
        logger.error("Project not found for update: %s", updated_project.get("id"))
        return False
    return True


def delete_project(project_id: str) -> bool:
    return projects.remove(project_id)


def iter_campaigns(project: dict) -> Iterator[tuple[dict, dict]]:
    for sprint in project.get("sprints") or []:
        for campaign in sprint.get("campaigns") or []:
            yield sprint, campaign


def find_sprint(project: dict, sprint_id: str) -> Optional[dict]:
    for sprint in project.get("sprints") or []:
        if sprint.get("id") == sprint_id:
            return sprint
    return None


def find_campaign(sprint: dict, campaign_id: str) -> Optional[dict]:
    for campaign in sprint.get("campaigns") or []:
        if campaign.get("id") == campaign_id:
            return campaign
    return None


def new_sprint(project_id: str, name: str, description: str = "", start: int | None = None, end: int | None = None) -> dict:
    start = start if start is not None else now_ms()
    return {
        "id": generate_id(),
        "name": name,
        "description": description,
        "startDate": start,
        "endDate": end if end is not None else start + DEFAULT_WINDOW_MS,
        "projectId": project_id,
        "campaigns": [],
    }


def new_campaign(sprint_id: str, name: str, description: str = "", start: int | None = None, end: int | None = None) -> dict:
    start = start if start is not None else now_ms()
    return {
        "id": generate_id(),
        "name": name,
        "description": description,
        "startDate": start,
        "endDate": end if end is not None else start + DEFAULT_WINDOW_MS,
        "sprintId": sprint_id,
        "tasks": [],
    }


def create_project(owner_id: str, name: str, description: str = "") -> dict:
    now = now_ms()
    project = {
        "id": generate_id(),
        "name": name,
        "description": description,
        "createdAt": now,
        "updatedAt": now,
        "ownerId": owner_id,
        "sprints": [],
    }
    add_project(project)
    return project


def add_sprint(project_id: str, name: str, description: str = "", start: int | None = None, end: int | None = None) -> Optional[dict]:
    sprint = new_sprint(project_id, name, description, start, end)

    def _apply(project: dict) -> None:
        project.setdefault("sprints", []).append(sprint)
        project["updatedAt"] = now_ms()

    if projects.update(project_id, _apply) is None:
        logger.error("Project not found: %s", project_id)
        return None
    return sprint


def add_campaign(
    project_id: str,
    sprint_id: str,
    name: str,
    description: str = "",
    start: int | None = None,
    end: int | None = None,
) -> Optional[dict]:
    campaign = new_campaign(sprint_id, name, description, start, end)
    with projects.locked():
        items = projects.all()
        for project in items:
            if project.get("id") != project_id:
                continue
            sprint = find_sprint(project, sprint_id)
            if sprint is None:
                logger.error("Sprint not found: %s", sprint_id)
                return None
            sprint.setdefault("campaigns", []).append(campaign)
            project["updatedAt"] = now_ms()
            projects.save(items)
            return campaign
    logger.error("Project not found: %s", project_id)
    return None


# ----------------------------------------------------------------- default project
def get_default_project_id(user_id: str) -> Optional[str]:
    return projects.store.get_raw(DEFAULT_PROJECT_KEY.format(user_id=user_id))


def set_default_project_id(user_id: str, project_id: str) -> None:
    projects.store.set_raw(DEFAULT_PROJECT_KEY.format(user_id=user_id), project_id)


def create_default_project_for_user(user_id: str, user_name: str) -> str:
    """Give a new employer a project with one sprint and one campaign ready for tasks."""
    now = now_ms()
    project_id = generate_id()
    sprint = new_sprint(project_id, "Default Sprint", "Automatically created sprint", now)
    sprint["campaigns"].append(new_campaign(sprint["id"], "Default Campaign", "Automatically created campaign", now))
    project = {
        "id": project_id,
        "name": "My First Project",
        "description": "Default project created automatically",
        "createdAt": now,
        "updatedAt": now,
        "ownerId": user_id,
        "sprints": [sprint],
    }
    add_project(project)
    set_default_project_id(user_id, project_id)
    logger.info("Created default project %s for %s", project_id, user_name)
    return project_id
