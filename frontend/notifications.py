"""
Notification actions used by the project and notification views.
"""

import logging
from typing import Iterable, Optional

from frontend.api_client import ApiError, TaskboardApiClient

logger = logging.getLogger(__name__)


class NotificationActions:
    def __init__(self, client: TaskboardApiClient):
        self.client = client

    async def mark_notifications_as_read(self, notifications: Optional[Iterable[dict]]) -> int:
        """
        Mark each given notification as read, one request per notification.

        A failure on one notification is logged and does not stop the rest.
        Returns how many were marked.
        """
        if notifications is None:
            return 0

        marked = 0
        for notification in notifications:
            try:
                await self.client.mark_notification_read(notification["id"])
                marked += 1
            except ApiError as e:
                logger.warning(f"Error marking notification {notification['id']} as read: {e.status_code}")
        return marked

    async def mark_project_notifications_as_read(self, project_id: int) -> int:
        """Mark the session user's unread notifications for one project as read."""
        notifications = await self.client.list_notifications()
        unread = [n for n in notifications if not n["is_read"] and n["project_id"] == project_id]
        return await self.mark_notifications_as_read(unread)
