from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from kushl.domain.constants import UserType
from kushl.routers.deps import require_user, required
from kushl.services import project_service, task_service

router = APIRouter(prefix="/projects", tags=["projects"])


def owned_project(project_id: str, user: dict) -> dict:
    """The project when ``user`` owns it (admins see every project), else 404."""
    project = project_service.get_project(project_id)
    if not project:
        raise HTTPException(404, "Project not found")
    if user.get("userType") != UserType.ADMIN.value and project.get("ownerId") != user["id"]:
        raise HTTPException(404, "Project not found")
    return project


@router.get("")
def list_projects(request: Request):
    user = require_user(request)
    owner = "all" if user.get("userType") == UserType.ADMIN.value else user["id"]
    return project_service.get_projects(owner)


@router.post("", status_code=201)
def create_project(request: Request, payload: dict):
    user = require_user(request)
    (name,) = required(payload, "name")
    return project_service.create_project(user["id"], name, payload.get("description") or "")


@router.get("/default")
def default_project(request: Request):
    user = require_user(request)
    project_id = project_service.get_default_project_id(user["id"])
    project = project_service.get_project(project_id) if project_id else None
    if not project:
        raise HTTPException(404, "No default project")
    return project


@router.get("/{project_id}")
def get_project(project_id: str, request: Request):
    return owned_project(project_id, require_user(request))


@router.delete("/{project_id}")
def delete_project(project_id: str, request: Request):
    owned_project(project_id, require_user(request))
    return {"ok": project_service.delete_project(project_id)}


@router.post("/{project_id}/sprints", status_code=201)
def add_sprint(project_id: str, request: Request, payload: dict):
    owned_project(project_id, require_user(request))
    (name,) = required(payload, "name")
    sprint = project_service.add_sprint(
        project_id, name, payload.get("description") or "", payload.get("startDate"), payload.get("endDate")
    )
    if sprint is None:
        raise HTTPException(404, "Project not found")
    return sprint


@router.post("/{project_id}/sprints/{sprint_id}/campaigns", status_code=201)
def add_campaign(project_id: str, sprint_id: str, request: Request, payload: dict):
    owned_project(project_id, require_user(request))
    (name,) = required(payload, "name")
    campaign = project_service.add_campaign(
        project_id, sprint_id, name, payload.get("description") or "", payload.get("startDate"), payload.get("endDate")
    )
    if campaign is None:
        raise HTTPException(404, "Sprint not found")
    return campaign


@router.post("/{project_id}/sprints/{sprint_id}/campaigns/{campaign_id}/tasks", status_code=201)
def create_task(project_id: str, sprint_id: str, campaign_id: str, request: Request, payload: dict):
    user = require_user(request)
    owned_project(project_id, user)
    (title,) = required(payload, "title")
    extra = {
        k: v
        for k, v in payload.items()
        if k not in {"title", "description", "status", "priority", "dueDate", "recurring", "id"}
    }
    task_id = task_service.create_task(
        project_id,
        sprint_id,
        campaign_id,
        title,
        payload.get("description") or "",
        payload.get("status") or "to_do",
        payload.get("priority") or "medium",
        payload.get("dueDate"),
        user["id"],
        user.get("fullName") or user.get("email") or "",
        payload.get("recurring"),
        extra,
    )
    if task_id is None:
        raise HTTPException(400, "Task could not be created")
    return task_service.get_task_by_id(task_id)


@router.post("/{project_id}/special-tasks", status_code=201)
def create_special_task(project_id: str, request: Request, payload: dict):
    user = require_user(request)
    owned_project(project_id, user)
    task_type, title = required(payload, "taskType", "title")
    task_id = task_service.create_special_task(
        project_id,
        payload.get("sprintId"),
        payload.get("campaignId"),
        task_type,
        title,
        payload.get("description") or "",
        user["id"],
        user.get("fullName") or user.get("email") or "",
        payload.get("initialData") or {},
    )
    if task_id is None:
        raise HTTPException(400, "Library item could not be created")
    return task_service.get_task_by_id(task_id)


@router.get("/{project_id}/tasks")
def list_tasks(
    project_id: str,
    request: Request,
    q: str = "",
    status: str | None = None,
    priority: str | None = None,
):
    project = owned_project(project_id, require_user(request))
    return task_service.filter_tasks(task_service.get_all_tasks(project), q, status, priority)
