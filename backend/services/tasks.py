"""
Task operations.

Reading and creating tasks requires a grant on the task's project. Updating,
deleting and changing the status of a task is allowed only for the user the
task is assigned to; the project owner gets no override.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from errors import AuthorizationError, InvalidInputError, NotFoundError
from models import Project, Task, TaskStatus
from services.users import user_exists
from services.visibility import can_view
from time_utils import is_overdue

logger = logging.getLogger(__name__)


def parse_status(status) -> TaskStatus:
    value = getattr(status, "value", status)
    try:
        return TaskStatus(value)
    except ValueError:
        raise InvalidInputError(f"Invalid status '{value}'. Valid values: ToDo, InProgress, Done") from None


def task_to_dict(task: Task) -> dict:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "status": task.status.value,
        "due_date": task.due_date,
        "project_id": task.project_id,
        "project_name": task.project.name if task.project else None,
        "assigned_user_id": task.assigned_user_id,
        "assigned_username": task.assigned_user.username if task.assigned_user else None,
        "is_overdue": is_overdue(task.due_date, task.status.value),
        "created_at": task.created_at,
    }


def _get_task(db: Session, task_id: int) -> Task:
    task = (
        db.query(Task)
        .options(joinedload(Task.project), joinedload(Task.assigned_user))
        .filter(Task.id == task_id)
        .first()
    )
    if task is None:
        raise NotFoundError(f"No task with id {task_id} found")
    return task


def _require_viewer(db: Session, project_id: int, caller_id: str) -> None:
    if not can_view(db, project_id, caller_id):
        logger.info(f"User {caller_id} has no access to project {project_id}")
        raise AuthorizationError("You do not have access to this project")


def _require_assignable(db: Session, project_id: int, user_id: Optional[str]) -> None:
    if user_id is None:
        return
    if not user_exists(db, user_id):
        raise InvalidInputError(f"Invalid user id {user_id}")
    if not can_view(db, project_id, user_id):
        raise InvalidInputError(f"User {user_id} cannot view project {project_id}")


def _require_assignee(task: Task, caller_id: str) -> None:
    if task.assigned_user_id != caller_id:
        logger.info(f"User {caller_id} is not assigned to task {task.id}")
        raise AuthorizationError("Only the assigned user can change this task")


def list_tasks_for_project(db: Session, project_id: int, caller_id: str) -> list[dict]:
    if db.query(Project.id).filter(Project.id == project_id).first() is None:
        raise NotFoundError(f"No project with id {project_id} found")
    _require_viewer(db, project_id, caller_id)

    tasks = (
        db.query(Task)
        .options(joinedload(Task.project), joinedload(Task.assigned_user))
        .filter(Task.project_id == project_id)
        .order_by(Task.due_date, Task.id)
        .all()
    )
    return [task_to_dict(t) for t in tasks]


def get_task(db: Session, task_id: int, caller_id: str) -> dict:
    task = _get_task(db, task_id)
    _require_viewer(db, task.project_id, caller_id)
    return task_to_dict(task)


def create_task(
    db: Session,
    caller_id: str,
    title: str,
    due_date: datetime,
    project_id: int,
    description: str = "",
    status=TaskStatus.todo,
    assigned_user_id: Optional[str] = None,
) -> dict:
    """
    Create a task in a project the caller can view.

    Raises:
        InvalidInputError: unknown project or status, or an assigned user who
            cannot view the project
        AuthorizationError: the caller has no grant on the project
    """
    logger.debug(f"User {caller_id} creating task '{title}' in project {project_id}")
    if db.query(Project.id).filter(Project.id == project_id).first() is None:
        raise InvalidInputError(f"Invalid project id {project_id}")
    _require_viewer(db, project_id, caller_id)

    task_status = parse_status(status)
    _require_assignable(db, project_id, assigned_user_id)

    task = Task(
        title=title,
        description=description or "",
        status=task_status,
        due_date=due_date,
        project_id=project_id,
        assigned_user_id=assigned_user_id,
    )
    db.add(task)
    db.commit()
    logger.info(f"Task created: {title} (ID: {task.id}) in project {project_id}")
    return task_to_dict(_get_task(db, task.id))


def update_task(
    db: Session,
    task_id: int,
    caller_id: str,
    title: str,
    due_date: datetime,
    project_id: int,
    description: str = "",
    status=TaskStatus.todo,
    assigned_user_id: Optional[str] = None,
) -> dict:
    """
    Replace a task's fields. Assigned user only.

    Raises:
        NotFoundError: the task does not exist
        AuthorizationError: the caller is not the assigned user, or is moving
            the task into a project they cannot view
        InvalidInputError: unknown status or project, or an assigned user who
            cannot view the target project
    """
    logger.debug(f"User {caller_id} updating task {task_id}")
    task = _get_task(db, task_id)
    _require_assignee(task, caller_id)

    task_status = parse_status(status)
    if db.query(Project.id).filter(Project.id == project_id).first() is None:
        raise InvalidInputError(f"Invalid project id {project_id}")
    if project_id != task.project_id:
        _require_viewer(db, project_id, caller_id)
    _require_assignable(db, project_id, assigned_user_id)

    task.title = title
    task.description = description or ""
    task.due_date = due_date
    task.status = task_status
    task.assigned_user_id = assigned_user_id
    task.project_id = project_id
    db.commit()
    logger.info(f"Task updated: {task_id}")
    return task_to_dict(_get_task(db, task_id))


def update_status(db: Session, task_id: int, caller_id: str, status) -> dict:
    task = _get_task(db, task_id)
    _require_assignee(task, caller_id)

    task.status = parse_status(status)
    db.commit()
    logger.info(f"Task {task_id} status changed to {task.status.value}")
    return task_to_dict(_get_task(db, task_id))


def delete_task(db: Session, task_id: int, caller_id: str) -> None:
    task = _get_task(db, task_id)
    _require_assignee(task, caller_id)

    db.delete(task)
    db.commit()
    logger.info(f"Task deleted: {task_id}")


def assign_user(db: Session, task_id: int, caller_id: str, user_id: str) -> dict:
    """
    Assign a task to a user. Any viewer of the project may assign.

    Raises:
        NotFoundError: the task does not exist
        AuthorizationError: the caller cannot view the task's project
        InvalidInputError: the user does not exist or cannot view the project
    """
    task = _get_task(db, task_id)
    _require_viewer(db, task.project_id, caller_id)
    _require_assignable(db, task.project_id, user_id)

    task.assigned_user_id = user_id
    db.commit()
    logger.info(f"Task {task_id} assigned to user {user_id}")
    return task_to_dict(_get_task(db, task_id))
