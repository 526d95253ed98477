"""
Notification fan-out.

An event scoped to a project produces one unread notification for every user
holding a grant on that project at the moment of the call.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from errors import AuthorizationError, NotFoundError
from models import Notification, Project, Task
from services.visibility import viewers_of

logger = logging.getLogger(__name__)


def fan_out(db: Session, project_id: int, task_id: Optional[int], message: str) -> list[Notification]:
    """Add one unread notification per current viewer. Flushes, does not commit."""
    recipients = viewers_of(db, project_id)
    notifications = [
        Notification(project_id=project_id, task_id=task_id, user_id=user_id, message=message, is_read=False)
        for user_id in sorted(recipients)
    ]
    db.add_all(notifications)
    db.flush()
    logger.debug(f"Fanned out notification for project {project_id} to {len(notifications)} viewers")
    return notifications


def notify(db: Session, project_id: int, task_id: Optional[int], message: str) -> bool:
    """
    Notify every viewer of a project.

    Returns:
        False if the project does not exist, or task_id is given and is not a
        task of that project. True once the notifications are committed.
    """
    logger.debug(f"Notify project {project_id} (task {task_id}): {message}")
    if db.query(Project.id).filter(Project.id == project_id).first() is None:
        logger.info(f"Notification rejected: project {project_id} not found")
        return False

    if task_id is not None:
        task_in_project = (
            db.query(Task.id).filter(Task.id == task_id, Task.project_id == project_id).first()
        )
        if task_in_project is None:
            logger.info(f"Notification rejected: task {task_id} is not in project {project_id}")
            return False

    try:
        created = fan_out(db, project_id, task_id, message)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Created {len(created)} notifications for project {project_id}")
    return True


def notification_to_dict(notification: Notification) -> dict:
    return {
        "id": notification.id,
        "project_id": notification.project_id,
        "project_name": notification.project.name if notification.project else None,
        "task_id": notification.task_id,
        "task_name": notification.task.title if notification.task else "",
        "message": notification.message,
        "is_read": notification.is_read,
        "created_at": notification.created_at,
    }


def list_for_user(db: Session, user_id: str) -> list[dict]:
    """The user's notifications, newest first."""
    notifications = (
        db.query(Notification)
        .options(joinedload(Notification.project), joinedload(Notification.task))
        .filter(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .all()
    )
    return [notification_to_dict(n) for n in notifications]


def _set_read(db: Session, notification_id: int, caller_id: str, is_read: bool) -> Notification:
    notification = db.query(Notification).filter(Notification.id == notification_id).first()
    if notification is None:
        raise NotFoundError(f"No notification with id {notification_id} found")
    if notification.user_id != caller_id:
        logger.info(f"User {caller_id} denied toggling notification {notification_id}")
        raise AuthorizationError("You can only change your own notifications")

    notification.is_read = is_read
    db.commit()
    db.refresh(notification)
    return notification


def mark_read(db: Session, notification_id: int, caller_id: str) -> Notification:
    """
    Raises:
        NotFoundError: the notification does not exist
        AuthorizationError: the caller is not the recipient
    """
    return _set_read(db, notification_id, caller_id, True)


def mark_unread(db: Session, notification_id: int, caller_id: str) -> Notification:
    return _set_read(db, notification_id, caller_id, False)


def mark_project_read(db: Session, project_id: int, user_id: str) -> int:
    """Mark all of the user's unread notifications for one project as read. Returns how many changed."""
    if db.query(Project.id).filter(Project.id == project_id).first() is None:
        raise NotFoundError(f"No project with id {project_id} found")

    unread = (
        db.query(Notification)
        .filter(
            Notification.project_id == project_id,
            Notification.user_id == user_id,
            Notification.is_read == False,  # noqa: E712
        )
        .all()
    )
    for notification in unread:
        notification.is_read = True
    db.commit()
    logger.debug(f"Marked {len(unread)} notifications read for user {user_id} on project {project_id}")
    return len(unread)
