"""
End-to-end flows through the HTTP API with an in-memory store.
"""
from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# keep the package importable when running tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from kushl.app import create_app
from kushl.core import config as core_config
from kushl.core.security import hash_password
from kushl.repositories import storage
from kushl.services import user_service
from kushl.services.session_service import SESSION_COOKIE_NAME


@pytest.fixture()
def app(monkeypatch):
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.setenv("APP_ENV", "dev")
    core_config.get_settings.cache_clear()
    storage.get_store.cache_clear()
    yield create_app()
    storage.get_store.cache_clear()
    core_config.get_settings.cache_clear()


def _register(app, email, user_type="student", **extra) -> TestClient:
    client = TestClient(app)
    resp = client.post("/auth/register", json={"email": email, "password": "supersecret", "userType": user_type, **extra})
    assert resp.status_code == 201, resp.text
    return client


def _admin(app, level="super") -> TestClient:
    admin = user_service.create_admin_user("Root", "root@example.com", "+91 90000 00000", level)
    admin["password"] = hash_password("adminpass123")
    user_service.add_user(admin)
    client = TestClient(app)
    assert client.post("/auth/login", json={"email": "root@example.com", "password": "adminpass123"}).status_code == 200
    return client


def _first_campaign(client):
    project = client.get("/projects/default").json()
    sprint = project["sprints"][0]
    return project["id"], sprint["id"], sprint["campaigns"][0]["id"]


def test_health(app):
    with TestClient(app) as client:
        resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["storage"] == "memory"
    assert resp.headers["X-Frame-Options"] == "DENY"


def test_register_sets_session_cookie(app):
    client = TestClient(app)
    resp = client.post("/auth/register", json={"email": "emp@example.com", "password": "supersecret", "userType": "employer"})

    assert resp.status_code == 201
    assert resp.json()["defaultProjectId"]
    cookie = resp.headers["set-cookie"]
    assert cookie.startswith(f"{SESSION_COOKIE_NAME}=")
    assert "HttpOnly" in cookie
    assert "samesite=strict" in cookie.lower()
    assert "secure" not in cookie.lower()

    me = client.get("/auth/me")
    assert me.status_code == 200
    assert me.json()["email"] == "emp@example.com"
    assert "password" not in me.json()


def test_register_errors(app):
    _register(app, "emp@example.com")
    client = TestClient(app)

    assert client.post("/auth/register", json={"email": "emp@example.com", "password": "supersecret"}).status_code == 409
    assert client.post("/auth/register", json={"email": "new@example.com", "password": "short"}).status_code == 400


def test_login_logout_cycle(app):
    _register(app, "stu@example.com")
    client = TestClient(app)

    assert client.get("/auth/me").status_code == 401
    assert client.post("/auth/login", json={"email": "stu@example.com", "password": "wrong-one"}).status_code == 401
    assert client.post("/auth/login", json={"email": "stu@example.com"}).status_code == 400

    resp = client.post("/auth/login", json={"email": "stu@example.com", "password": "supersecret"})
    assert resp.status_code == 200
    assert resp.json()["streak"] == 1
    assert client.get("/me/gamification").json()["points"] == 50

    assert client.post("/auth/logout").status_code == 200
    assert client.get("/auth/me").status_code == 401


def test_task_marketplace_flow(app):
    employer = _register(app, "emp@example.com", "employer", fullName="Emp")
    student = _register(app, "stu@example.com", fullName="Stu")
    project_id, sprint_id, campaign_id = _first_campaign(employer)

    resp = employer.post(
        f"/projects/{project_id}/sprints/{sprint_id}/campaigns/{campaign_id}/tasks",
        json={"title": "Logo for launch", "priority": "high", "price": 1500, "category": "Logo Design"},
    )
    assert resp.status_code == 201
    task = resp.json()
    assert task["price"] == 1500

    # unpublished tasks are invisible and closed to applications
    assert student.get("/public/tasks").json() == []
    assert student.post(f"/tasks/{task['id']}/applications", json={}).status_code == 404

    assert employer.post(f"/tasks/{task['id']}/publish").json()["isPublished"] is True
    assert [t["id"] for t in student.get("/public/tasks", params={"category": "Logo Design"}).json()] == [task["id"]]

    applied = student.post(f"/tasks/{task['id']}/applications", json={"note": "I can do this"})
    assert applied.status_code == 201
    assert student.post(f"/tasks/{task['id']}/applications", json={}).status_code == 409
    assert employer.post(f"/tasks/{task['id']}/applications", json={}).status_code == 403

    # only the owner decides on applications
    application_id = applied.json()["id"]
    assert student.patch(f"/tasks/{task['id']}/applications/{application_id}", json={"status": "approved"}).status_code == 404
    assert employer.patch(f"/tasks/{task['id']}/applications/{application_id}", json={"status": "approved"}).status_code == 200

    assigned = student.get(f"/tasks/{task['id']}").json()
    assert assigned["assigneeId"] == assigned["assignment"]["studentId"]
    assert assigned["timelineMessages"][-1]["content"] == "Stu has been assigned to this task"

    stats = student.get("/me/stats").json()
    assert stats["taskLimit"] == 1
    assert stats["canApply"] is False

    assert student.post(f"/tasks/{task['id']}/timeline", json={"content": "Started"}).status_code == 201
    assert employer.post(f"/tasks/{task['id']}/complete").status_code == 200

    stats = student.get("/me/stats").json()
    assert stats["completedTasks"] == 1
    assert stats["totalEarnings"] == 1500
    assert stats["netEarnings"] == 1350
    assert stats["canApply"] is True


def test_projects_are_private_to_their_owner(app):
    employer = _register(app, "emp@example.com", "employer")
    other = _register(app, "other@example.com", "employer")
    project_id, _sprint_id, _campaign_id = _first_campaign(employer)

    assert other.get(f"/projects/{project_id}").status_code == 404
    assert other.delete(f"/projects/{project_id}").status_code == 404
    assert len(other.get("/projects").json()) == 1
    assert employer.get(f"/projects/{project_id}").status_code == 200


def test_library_items_cannot_be_published(app):
    employer = _register(app, "emp@example.com", "employer")
    project_id, _sprint_id, _campaign_id = _first_campaign(employer)

    resp = employer.post(
        f"/projects/{project_id}/special-tasks",
        json={"taskType": "brand_brief", "title": "Brand", "initialData": {"brandName": "KushL"}},
    )
    assert resp.status_code == 201
    assert resp.json()["brandBrief"]["brandName"] == "KushL"
    assert employer.post(f"/tasks/{resp.json()['id']}/publish").status_code == 400


def test_reviews_endpoint(app):
    employer = _register(app, "emp@example.com", "employer", fullName="Emp")
    project_id, sprint_id, campaign_id = _first_campaign(employer)
    task = employer.post(
        f"/projects/{project_id}/sprints/{sprint_id}/campaigns/{campaign_id}/tasks", json={"title": "Edit"}
    ).json()

    bad = employer.post(f"/tasks/{task['id']}/reviews", json={"recipientId": "s1", "rating": 9})
    assert bad.status_code == 400
    ok = employer.post(f"/tasks/{task['id']}/reviews", json={"recipientId": "s1", "rating": 5, "comment": "great"})
    assert ok.status_code == 201

    page = TestClient(app).get("/public/reviews", params={"reviewer_type": "employer"}).json()
    assert page["totalPages"] == 1
    assert page["reviews"][0]["comment"] == "great"


def test_admin_routes_need_admin(app):
    student = _register(app, "stu@example.com")

    assert student.get("/admin/users").status_code == 403
    assert TestClient(app).get("/admin/users").status_code == 401


def test_admin_permissions_follow_level(app):
    support = _admin(app, "support")

    assert support.get("/admin/users").status_code == 403
    assert support.get("/admin/backup").status_code == 403


def test_admin_user_list_import_export(app):
    admin = _admin(app)

    resp = admin.post("/admin/user-lists/banned", json={"userId": "u1", "username": "one", "email": "one@example.com", "reason": "spam"})
    assert resp.status_code == 201
    assert admin.post("/admin/user-lists/banned", json={"userId": "u1", "username": "one", "email": "one@example.com"}).status_code == 409

    exported = admin.get("/admin/user-lists/banned/export")
    assert exported.headers["content-type"].startswith("text/csv")
    assert exported.text.splitlines()[0] == "userId,username,email,addedAt,addedBy,reason"

    imported = admin.post("/admin/user-lists/discouraged/import", content=exported.text.encode("utf-8"))
    assert imported.json()["added"] == 1
    assert admin.get("/admin/users/u1/list-effects").json() == {"isBanned": True, "isDiscouraged": True, "isEncouraged": False}
    assert admin.get("/admin/user-lists/vip").status_code == 404
    assert admin.delete("/admin/user-lists/banned/u1").status_code == 200
    assert admin.delete("/admin/user-lists/banned/u1").status_code == 404


def test_banned_user_cannot_log_in(app):
    _register(app, "stu@example.com")
    admin = _admin(app)
    student_id = user_service.find_user_by_email("stu@example.com")["id"]
    admin.post("/admin/user-lists/banned", json={"userId": student_id, "username": "stu", "email": "stu@example.com"})

    resp = TestClient(app).post("/auth/login", json={"email": "stu@example.com", "password": "supersecret"})
    assert resp.status_code == 403


def test_notifications_reach_their_audience(app):
    admin = _admin(app)
    resp = admin.post("/admin/notifications", json={"title": "Hi guests", "message": "Welcome", "showToGuests": True})
    assert resp.status_code == 201
    admin.post("/admin/notifications", json={"title": "Students only", "message": "Tips", "showToEmployers": False})
    assert admin.post("/admin/notifications", json={"title": "No body", "message": ""}).status_code == 400

    assert [n["title"] for n in TestClient(app).get("/public/notifications").json()] == ["Hi guests"]
    employer = _register(app, "emp@example.com", "employer")
    assert [n["title"] for n in employer.get("/public/notifications").json()] == ["Hi guests"]


def test_sops_and_payments(app):
    admin = _admin(app)

    assert admin.post("/admin/sops", json={"category": "Logo Design", "title": "Logos", "content": "Use vectors"}).status_code == 201
    assert TestClient(app).get("/public/sops/Logo Design").json()["title"] == "Logos"
    assert TestClient(app).get("/public/sops/Voice Over").status_code == 404
    assert "Logo Design" in admin.get("/admin/sops/coverage").json()["withSops"]

    payment = admin.post("/admin/payments", json={"taskId": "t1", "studentId": "s1", "employerId": "e1", "amount": 2000}).json()
    assert payment["platformCommission"] == 200
    assert admin.put(f"/admin/payments/{payment['id']}/status", json={"status": "completed"}).status_code == 200
    assert admin.get("/admin/payments", params={"user_id": "s1"}).json()[0]["status"] == "completed"


def test_backup_and_restore_through_api(app):
    admin = _admin(app)
    admin.post("/admin/sops", json={"category": "Logo Design", "title": "Logos", "content": "..."})

    snapshot = admin.get("/admin/backup").json()
    assert "kushl_standard_operating_procedures" in snapshot["data"]

    assert admin.post("/admin/restore", json={"nothing": True}).status_code == 400
    resp = admin.post("/admin/restore", json=snapshot)
    assert resp.status_code == 200
    assert resp.json()["ok"] is True


def test_task_details_stay_with_owner_and_participants(app):
    employer = _register(app, "emp@example.com", "employer", fullName="Emp")
    student = _register(app, "stu@example.com", fullName="Stu")
    other = _register(app, "other@example.com", fullName="Other")
    project_id, sprint_id, campaign_id = _first_campaign(employer)
    task = employer.post(
        f"/projects/{project_id}/sprints/{sprint_id}/campaigns/{campaign_id}/tasks", json={"title": "Banner"}
    ).json()
    employer.post(f"/tasks/{task['id']}/publish")
    student.post(f"/tasks/{task['id']}/applications", json={"note": "private note"})

    listed = TestClient(app).get("/public/tasks").json()
    assert [t["id"] for t in listed] == [task["id"]]
    assert "applications" not in listed[0]
    assert "private note" not in TestClient(app).get("/public/tasks").text

    seen_by_other = other.get(f"/tasks/{task['id']}").json()
    assert seen_by_other["title"] == "Banner"
    assert "applications" not in seen_by_other
    assert employer.get(f"/tasks/{task['id']}").json()["applications"][0]["note"] == "private note"


def test_credentials_are_hidden_from_other_users(app):
    employer = _register(app, "emp@example.com", "employer")
    other = _register(app, "other@example.com")
    project_id, _sprint_id, _campaign_id = _first_campaign(employer)
    vault = employer.post(
        f"/projects/{project_id}/special-tasks",
        json={"taskType": "credentials_library", "title": "Logins", "initialData": {"credentials": [{"password": "hunter2"}]}},
    ).json()

    assert "credentials" not in other.get(f"/tasks/{vault['id']}").json()
    assert employer.get(f"/tasks/{vault['id']}").json()["credentials"] == [{"password": "hunter2"}]


def test_achievement_progress_cannot_be_self_reported(app):
    student = _register(app, "stu@example.com")
    before = student.get("/me/gamification").json()

    resp = student.post("/me/gamification/achievements/daily_login/progress", json={"progress": 7})

    assert resp.status_code in (404, 405)
    assert student.get("/me/gamification").json() == before


def test_profile_update_cannot_take_email_or_status(app):
    first = _register(app, "a@example.com")
    second = _register(app, "b@example.com")

    assert second.patch("/auth/profile", json={"email": "a@example.com"}).status_code == 409
    assert second.get("/auth/me").json()["email"] == "b@example.com"
    assert first.get("/auth/me").status_code == 200

    second_id = user_service.find_user_by_email("b@example.com")["id"]
    user_service.update_user_status(second_id, "hold")
    assert second.patch("/auth/profile", json={"status": "active", "fullName": "Bee"}).status_code == 200
    stored = user_service.find_user_by_id(second_id)
    assert stored["status"] == "hold"
    assert stored["fullName"] == "Bee"


def test_failed_profile_write_is_a_server_error(app, monkeypatch):
    client = _register(app, "stu@example.com")
    monkeypatch.setattr(user_service, "update_user", lambda user: False)

    resp = client.patch("/auth/profile", json={"fullName": "Stu"})

    assert resp.status_code == 500
    assert resp.json()["detail"] == "Profile update failed"
