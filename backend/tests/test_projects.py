"""
Tests for project endpoints (/api/projects).

Tests cover:
- Authentication (401)
- Create, get, update, delete with owner-only mutation (403)
- Sharing and viewer listing
- Visible / owned / admin listings
- Error precedence (404 before 403)
"""

import logging
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

import models

logger = logging.getLogger(__name__)


# ============== Authentication ==============


def test_list_visible_without_authentication(client: TestClient):
    """Test that listing projects fails without authentication (401)."""
    response = client.get("/api/projects/visible")

    assert response.status_code == 401, f"Expected 401, got {response.status_code}: {response.json()}"


def test_invalid_token_rejected(client: TestClient):
    response = client.get("/api/projects/visible", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


# ============== Create / Read ==============


def test_create_project(client: TestClient, regular_user: models.User, user_headers: dict):
    """Test that a created project is owned by the caller and appears in their lists."""
    logger.debug("Testing project creation")

    response = client.post(
        "/api/projects",
        json={"name": "Garden", "description": "Spring planting"},
        headers=user_headers
    )

    assert response.status_code == 201, f"Expected 201, got {response.status_code}: {response.json()}"
    data = response.json()
    assert data["name"] == "Garden"
    assert data["owner_id"] == regular_user.id
    assert data["owner_username"] == regular_user.username
    assert data["task_count"] == 0

    visible = client.get("/api/projects/visible", headers=user_headers).json()
    owned = client.get("/api/projects/owned", headers=user_headers).json()
    assert [p["id"] for p in visible] == [data["id"]]
    assert [p["id"] for p in owned] == [data["id"]]
    logger.info("✓ Project created and listed for its owner")


def test_create_project_requires_name(client: TestClient, user_headers: dict):
    response = client.post("/api/projects", json={"name": ""}, headers=user_headers)

    assert response.status_code == 422


def test_get_project_as_viewer(client: TestClient, project: models.Project, admin_headers: dict):
    """Test that an admin sees projects created by others."""
    response = client.get(f"/api/projects/{project.id}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["name"] == "Test Project"
    assert response.json()["unread_notifications_count"] == 0


def test_get_project_without_grant(client: TestClient, project: models.Project, another_user_headers: dict):
    response = client.get(f"/api/projects/{project.id}", headers=another_user_headers)

    assert response.status_code == 403, f"Expected 403, got {response.status_code}: {response.json()}"


def test_get_missing_project(client: TestClient, user_headers: dict):
    response = client.get("/api/projects/9999", headers=user_headers)

    assert response.status_code == 404
    assert "9999" in response.json()["detail"]


def test_project_task_count(client: TestClient, project: models.Project, task: models.Task, user_headers: dict):
    owned = client.get("/api/projects/owned", headers=user_headers).json()

    assert owned[0]["task_count"] == 1


# ============== Update / Delete ==============


def test_update_project_as_owner(client: TestClient, project: models.Project, user_headers: dict):
    response = client.put(
        f"/api/projects/{project.id}",
        json={"name": "Renamed", "description": "New description"},
        headers=user_headers
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Renamed"
    assert response.json()["description"] == "New description"


def test_update_project_as_admin_viewer_is_denied(client: TestClient, project: models.Project, admin_headers: dict):
    """Test that a grant is not enough to update: admins see but do not own."""
    response = client.put(
        f"/api/projects/{project.id}",
        json={"name": "Hijacked"},
        headers=admin_headers
    )

    assert response.status_code == 403, f"Expected 403, got {response.status_code}: {response.json()}"


def test_update_missing_project_is_404_for_anyone(client: TestClient, another_user_headers: dict):
    """Test existence-first precedence: a missing project is 404 even for a user who could never own it."""
    response = client.put("/api/projects/777", json={"name": "Ghost"}, headers=another_user_headers)

    assert response.status_code == 404


def test_delete_project_cascades(
    client: TestClient,
    test_db: Session,
    project: models.Project,
    task: models.Task,
    user_headers: dict
):
    """Test that deleting a project removes its grants, tasks, comments and notifications."""
    project_id = project.id
    client.post(f"/api/tasks/{task.id}/comments", json={"text": "note"}, headers=user_headers)

    response = client.delete(f"/api/projects/{project_id}", headers=user_headers)

    assert response.status_code == 204
    test_db.expire_all()
    assert test_db.query(models.Project).filter(models.Project.id == project_id).count() == 0
    assert test_db.query(models.ProjectVisibility).filter(models.ProjectVisibility.project_id == project_id).count() == 0
    assert test_db.query(models.Task).filter(models.Task.project_id == project_id).count() == 0
    assert test_db.query(models.Comment).count() == 0
    assert test_db.query(models.Notification).filter(models.Notification.project_id == project_id).count() == 0
    logger.info("✓ Project and dependents deleted")


def test_delete_project_as_non_owner(client: TestClient, project: models.Project, admin_headers: dict):
    response = client.delete(f"/api/projects/{project.id}", headers=admin_headers)

    assert response.status_code == 403
    assert client.get(f"/api/projects/{project.id}", headers=admin_headers).status_code == 200


# ============== Sharing ==============


def test_share_project(
    client: TestClient,
    project: models.Project,
    another_user: models.User,
    user_headers: dict,
    another_user_headers: dict
):
    """Test that a shared project shows up for the new viewer."""
    response = client.post(
        f"/api/projects/{project.id}/share",
        json={"shared_user_id": another_user.id},
        headers=user_headers
    )

    assert response.status_code == 200, f"Expected 200, got {response.status_code}: {response.json()}"
    visible = client.get("/api/projects/visible", headers=another_user_headers).json()
    assert [p["id"] for p in visible] == [project.id]
    assert visible[0]["unread_notifications_count"] == 0

    # Viewer can read but not mutate
    assert client.get(f"/api/projects/{project.id}", headers=another_user_headers).status_code == 200
    assert client.delete(f"/api/projects/{project.id}", headers=another_user_headers).status_code == 403


def test_share_project_twice_is_ok(
    client: TestClient,
    test_db: Session,
    project: models.Project,
    another_user: models.User,
    user_headers: dict
):
    for _ in range(2):
        response = client.post(
            f"/api/projects/{project.id}/share",
            json={"shared_user_id": another_user.id},
            headers=user_headers
        )
        assert response.status_code == 200

    grants = (
        test_db.query(models.ProjectVisibility)
        .filter(models.ProjectVisibility.project_id == project.id, models.ProjectVisibility.user_id == another_user.id)
        .count()
    )
    assert grants == 1


def test_share_project_not_owner(
    client: TestClient,
    project: models.Project,
    another_user: models.User,
    another_user_headers: dict
):
    response = client.post(
        f"/api/projects/{project.id}/share",
        json={"shared_user_id": another_user.id},
        headers=another_user_headers
    )

    assert response.status_code == 403


def test_share_project_unknown_user(client: TestClient, project: models.Project, user_headers: dict):
    response = client.post(
        f"/api/projects/{project.id}/share",
        json={"shared_user_id": "00000000-0000-0000-0000-000000000000"},
        headers=user_headers
    )

    assert response.status_code == 400


def test_list_viewers(
    client: TestClient,
    project: models.Project,
    admin_user: models.User,
    regular_user: models.User,
    user_headers: dict
):
    response = client.get(f"/api/projects/{project.id}/viewers", headers=user_headers)

    assert response.status_code == 200
    assert {u["id"] for u in response.json()} == {admin_user.id, regular_user.id}


# ============== Admin Listing ==============


def test_list_all_projects_requires_admin(client: TestClient, project: models.Project, user_headers: dict):
    response = client.get("/api/projects", headers=user_headers)

    assert response.status_code == 403


def test_list_all_projects_as_admin(
    client: TestClient,
    test_db: Session,
    project: models.Project,
    another_user: models.User,
    admin_headers: dict
):
    """Test that admins list every project, including ones they hold no grant on."""
    # Created directly, bypassing the service, so the admin has no grant
    hidden = models.Project(name="Hidden", description="", owner_id=another_user.id)
    test_db.add(hidden)
    test_db.commit()

    response = client.get("/api/projects", headers=admin_headers)

    assert response.status_code == 200
    assert {p["name"] for p in response.json()} == {"Test Project", "Hidden"}
