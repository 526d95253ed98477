"""
Tests for comment endpoints.

Tests cover:
- Viewers can read and write comments
- Author-only update and delete
- A new comment notifies every viewer of the project
"""

import logging
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

import models

logger = logging.getLogger(__name__)


def test_create_and_list_comments(client: TestClient, task: models.Task, regular_user: models.User, user_headers: dict):
    response = client.post(f"/api/tasks/{task.id}/comments", json={"text": "First!"}, headers=user_headers)

    assert response.status_code == 201, f"Expected 201, got {response.status_code}: {response.json()}"
    assert response.json()["author_username"] == regular_user.username
    assert response.json()["task_title"] == "Test Task"

    listed = client.get(f"/api/tasks/{task.id}/comments", headers=user_headers).json()
    assert [c["text"] for c in listed] == ["First!"]


def test_comment_notifies_all_viewers(
    client: TestClient,
    test_db: Session,
    task: models.Task,
    admin_user: models.User,
    regular_user: models.User,
    user_headers: dict
):
    """Test that commenting fans out '<username> commented on <title>' to each viewer, author included."""
    client.post(f"/api/tasks/{task.id}/comments", json={"text": "Ping"}, headers=user_headers)

    notifications = test_db.query(models.Notification).all()
    assert {n.user_id for n in notifications} == {admin_user.id, regular_user.id}
    assert all(n.message == "Regular commented on Test Task" for n in notifications)
    assert all(n.task_id == task.id for n in notifications)
    logger.info("✓ Comment fanned out to viewers")


def test_non_viewer_cannot_comment(client: TestClient, task: models.Task, another_user_headers: dict):
    response = client.post(f"/api/tasks/{task.id}/comments", json={"text": "Hi"}, headers=another_user_headers)

    assert response.status_code == 403


def test_comment_on_missing_task(client: TestClient, user_headers: dict):
    response = client.post("/api/tasks/999/comments", json={"text": "Hi"}, headers=user_headers)

    assert response.status_code == 404


def test_empty_comment_rejected(client: TestClient, task: models.Task, user_headers: dict):
    response = client.post(f"/api/tasks/{task.id}/comments", json={"text": ""}, headers=user_headers)

    assert response.status_code == 422


def test_author_can_edit_and_delete(client: TestClient, task: models.Task, user_headers: dict):
    comment_id = client.post(
        f"/api/tasks/{task.id}/comments", json={"text": "Draft"}, headers=user_headers
    ).json()["id"]

    edited = client.put(f"/api/comments/{comment_id}", json={"text": "Final"}, headers=user_headers)
    assert edited.status_code == 200
    assert edited.json()["text"] == "Final"

    deleted = client.delete(f"/api/comments/{comment_id}", headers=user_headers)
    assert deleted.status_code == 204
    assert client.get(f"/api/tasks/{task.id}/comments", headers=user_headers).json() == []


def test_other_viewer_cannot_edit_or_delete(
    client: TestClient,
    task: models.Task,
    user_headers: dict,
    admin_headers: dict
):
    """Test that seeing a project is not enough to modify someone else's comment."""
    comment_id = client.post(
        f"/api/tasks/{task.id}/comments", json={"text": "Mine"}, headers=user_headers
    ).json()["id"]

    assert client.put(f"/api/comments/{comment_id}", json={"text": "Ours"}, headers=admin_headers).status_code == 403
    assert client.delete(f"/api/comments/{comment_id}", headers=admin_headers).status_code == 403


def test_edit_missing_comment(client: TestClient, user_headers: dict):
    assert client.put("/api/comments/12", json={"text": "?"}, headers=user_headers).status_code == 404
