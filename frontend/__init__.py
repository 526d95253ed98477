"""Python client for the Taskboard API, used by the web frontend."""

from frontend.api_client import API_BASE_URL, ApiError, TaskboardApiClient
from frontend.auth_state import AuthState, get_roles, get_user_id
from frontend.notifications import NotificationActions
from frontend.token_store import SessionTokenStore

__all__ = [
    "API_BASE_URL",
    "ApiError",
    "AuthState",
    "NotificationActions",
    "SessionTokenStore",
    "TaskboardApiClient",
    "get_roles",
    "get_user_id",
]
