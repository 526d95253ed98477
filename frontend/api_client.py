"""
Taskboard API client for the web frontend.

One client is bound to one browser session. Every request carries that
session's bearer token, if it has one; logging in stores the issued token
and logging out clears it.
"""

import logging
import os
from datetime import datetime
from typing import Any, Optional

import httpx

from frontend.auth_state import AuthState
from frontend.token_store import SessionTokenStore

logger = logging.getLogger(__name__)

# Configuration
API_BASE_URL = os.getenv("TASKBOARD_API_URL", "http://localhost:8000")


class ApiError(Exception):
    """A 4xx/5xx response from the API."""

    def __init__(self, status_code: int, detail: Any):
        super().__init__(f"API error {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


class TaskboardApiClient:
    def __init__(
        self,
        store: SessionTokenStore,
        session_id: str,
        base_url: str = API_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.auth = AuthState(store, session_id)
        self._client = httpx.AsyncClient(base_url=base_url, timeout=30.0, transport=transport)

    async def __aenter__(self) -> "TaskboardApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self) -> dict:
        token = self.auth.token
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    async def api_request(self, method: str, endpoint: str, data: Any = None) -> Any:
        """Make an API request to the backend. Returns the decoded JSON body, or None for empty responses."""
        logger.debug(f"{method} {endpoint}")
        response = await self._client.request(
            method,
            endpoint,
            json=data if method in ("POST", "PUT") else None,
            params=data if method == "GET" else None,
            headers=self._headers(),
        )

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = None
            detail = body.get("detail", response.text) if isinstance(body, dict) else response.text
            logger.info(f"{method} {endpoint} failed: {response.status_code} {detail}")
            raise ApiError(response.status_code, detail)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # ============== Auth ==============

    async def register(self, username: str, email: str, password: str) -> dict:
        return await self.api_request(
            "POST", "/api/auth/register", {"username": username, "email": email, "password": password}
        )

    async def login(self, username: str, password: str) -> dict:
        """Log in and keep the issued token for this session."""
        result = await self.api_request("POST", "/api/auth/login", {"username": username, "password": password})
        if result.get("is_success") and result.get("token"):
            self.auth.mark_authenticated(result["token"])
        return result

    def logout(self) -> None:
        self.auth.mark_logged_out()

    async def me(self) -> dict:
        return await self.api_request("GET", "/api/auth/me")

    # ============== Users ==============

    async def list_users(self) -> list:
        return await self.api_request("GET", "/api/users")

    async def get_user(self, user_id: str) -> dict:
        return await self.api_request("GET", f"/api/users/{user_id}")

    async def update_user(
        self,
        user_id: str,
        username: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
    ) -> dict:
        data = {k: v for k, v in {"username": username, "email": email, "password": password}.items() if v is not None}
        return await self.api_request("PUT", f"/api/users/{user_id}", data)

    async def delete_user(self, user_id: str) -> None:
        await self.api_request("DELETE", f"/api/users/{user_id}")
        if user_id == self.auth.user_id:
            self.logout()

    async def delete_user_as_admin(self, user_id: str) -> None:
        await self.api_request("DELETE", f"/api/users/admin/{user_id}")

    # ============== Projects ==============

    async def list_all_projects(self) -> list:
        return await self.api_request("GET", "/api/projects")

    async def list_visible_projects(self) -> list:
        return await self.api_request("GET", "/api/projects/visible")

    async def list_owned_projects(self) -> list:
        return await self.api_request("GET", "/api/projects/owned")

    async def create_project(self, name: str, description: str = "") -> dict:
        return await self.api_request("POST", "/api/projects", {"name": name, "description": description})

    async def get_project(self, project_id: int) -> dict:
        return await self.api_request("GET", f"/api/projects/{project_id}")

    async def update_project(self, project_id: int, name: str, description: str = "") -> dict:
        return await self.api_request("PUT", f"/api/projects/{project_id}", {"name": name, "description": description})

    async def delete_project(self, project_id: int) -> None:
        await self.api_request("DELETE", f"/api/projects/{project_id}")

    async def share_project(self, project_id: int, user_id: str) -> dict:
        return await self.api_request("POST", f"/api/projects/{project_id}/share", {"shared_user_id": user_id})

    async def list_project_viewers(self, project_id: int) -> list:
        return await self.api_request("GET", f"/api/projects/{project_id}/viewers")

    async def list_project_tasks(self, project_id: int) -> list:
        return await self.api_request("GET", f"/api/projects/{project_id}/tasks")

    # ============== Tasks ==============

    @staticmethod
    def _task_body(
        title: str,
        due_date: datetime,
        project_id: int,
        description: str,
        status: str,
        assigned_user_id: Optional[str],
    ) -> dict:
        return {
            "title": title,
            "description": description,
            "status": status,
            "due_date": due_date.isoformat(),
            "project_id": project_id,
            "assigned_user_id": assigned_user_id,
        }

    async def create_task(
        self,
        title: str,
        due_date: datetime,
        project_id: int,
        description: str = "",
        status: str = "ToDo",
        assigned_user_id: Optional[str] = None,
    ) -> dict:
        body = self._task_body(title, due_date, project_id, description, status, assigned_user_id)
        return await self.api_request("POST", "/api/tasks", body)

    async def get_task(self, task_id: int) -> dict:
        return await self.api_request("GET", f"/api/tasks/{task_id}")

    async def update_task(
        self,
        task_id: int,
        title: str,
        due_date: datetime,
        project_id: int,
        description: str = "",
        status: str = "ToDo",
        assigned_user_id: Optional[str] = None,
    ) -> dict:
        body = self._task_body(title, due_date, project_id, description, status, assigned_user_id)
        return await self.api_request("PUT", f"/api/tasks/{task_id}", body)

    async def delete_task(self, task_id: int) -> None:
        await self.api_request("DELETE", f"/api/tasks/{task_id}")

    async def update_task_status(self, task_id: int, status: str) -> dict:
        return await self.api_request("PUT", f"/api/tasks/{task_id}/status/{status}")

    async def assign_task(self, task_id: int, user_id: str) -> dict:
        return await self.api_request("PUT", f"/api/tasks/{task_id}/assign/{user_id}")

    # ============== Comments ==============

    async def list_comments(self, task_id: int) -> list:
        return await self.api_request("GET", f"/api/tasks/{task_id}/comments")

    async def create_comment(self, task_id: int, text: str) -> dict:
        return await self.api_request("POST", f"/api/tasks/{task_id}/comments", {"text": text})

    async def update_comment(self, comment_id: int, text: str) -> dict:
        return await self.api_request("PUT", f"/api/comments/{comment_id}", {"text": text})

    async def delete_comment(self, comment_id: int) -> None:
        await self.api_request("DELETE", f"/api/comments/{comment_id}")

    # ============== Notifications ==============

    async def list_notifications(self) -> list:
        return await self.api_request("GET", "/api/notifications")

    async def create_notification(self, project_id: int, message: str, task_id: Optional[int] = None) -> None:
        await self.api_request(
            "POST", "/api/notifications", {"project_id": project_id, "task_id": task_id, "message": message}
        )

    async def mark_notification_read(self, notification_id: int) -> dict:
        return await self.api_request("PUT", f"/api/notifications/{notification_id}/read")

    async def mark_notification_unread(self, notification_id: int) -> dict:
        return await self.api_request("PUT", f"/api/notifications/{notification_id}/unread")

    async def mark_project_notifications_read(self, project_id: int) -> dict:
        return await self.api_request("PUT", f"/api/notifications/project/{project_id}/read")
