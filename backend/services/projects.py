"""
Project access control.

Every operation takes the caller's user id explicitly. Reads are gated by the
visibility index, mutations by the ownership rule. When both "missing" and
"not allowed" apply, existence is checked first: a missing project is always
NotFoundError, an existing project the caller may not touch is always
AuthorizationError.
"""

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from errors import AuthorizationError, InvalidInputError, NotFoundError
from models import ADMIN_ROLE, Notification, Project, Task, User
from services import visibility
from services.users import list_users_by_ids, list_users_with_role, user_exists

logger = logging.getLogger(__name__)


def _get_project(db: Session, project_id: int) -> Project:
    project = db.query(Project).filter(Project.id == project_id).first()
    if project is None:
        logger.info(f"Project {project_id} not found")
        raise NotFoundError(f"No project with id {project_id} found")
    return project


def _task_counts(db: Session, project_ids: list[int]) -> dict[int, int]:
    if not project_ids:
        return {}
    rows = (
        db.query(Task.project_id, func.count(Task.id))
        .filter(Task.project_id.in_(project_ids))
        .group_by(Task.project_id)
        .all()
    )
    return {project_id: count for project_id, count in rows}


def _unread_counts(db: Session, project_ids: list[int], user_id: str) -> dict[int, int]:
    if not project_ids:
        return {}
    rows = (
        db.query(Notification.project_id, func.count(Notification.id))
        .filter(
            Notification.project_id.in_(project_ids),
            Notification.user_id == user_id,
            Notification.is_read == False,  # noqa: E712
        )
        .group_by(Notification.project_id)
        .all()
    )
    return {project_id: count for project_id, count in rows}


def project_to_dict(project: Project, task_count: int = 0, unread_count: Optional[int] = None) -> dict:
    data = {
        "id": project.id,
        "name": project.name,
        "description": project.description,
        "owner_id": project.owner_id,
        "owner_username": project.owner.username if project.owner else "Unknown",
        "task_count": task_count,
        "created_at": project.created_at,
    }
    if unread_count is not None:
        data["unread_notifications_count"] = unread_count
    return data


def _to_dicts(db: Session, projects: list[Project], unread_for: Optional[str] = None) -> list[dict]:
    ids = [p.id for p in projects]
    task_counts = _task_counts(db, ids)
    unread = _unread_counts(db, ids, unread_for) if unread_for else None
    return [
        project_to_dict(p, task_counts.get(p.id, 0), None if unread is None else unread.get(p.id, 0))
        for p in projects
    ]


def create_project(db: Session, owner_id: str, name: str, description: str = "") -> Project:
    """
    Create a project owned by owner_id.

    The owner and every admin receive a grant in the same transaction as the
    project row, so a committed project always has its owner grant.

    Raises:
        InvalidInputError: owner_id does not resolve to an existing user
    """
    logger.debug(f"User {owner_id} creating project: {name}")
    if not user_exists(db, owner_id):
        raise InvalidInputError(f"Invalid user id {owner_id}")

    try:
        project = Project(name=name, description=description or "", owner_id=owner_id)
        db.add(project)
        db.flush()

        admin_ids = [admin.id for admin in list_users_with_role(db, ADMIN_ROLE)]
        visibility.grant_many(db, project.id, [owner_id, *admin_ids])

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(project)
    logger.info(f"Project created: {project.name} (ID: {project.id}) by user {owner_id}")
    return project


def share_project(db: Session, project_id: int, caller_id: str, target_user_id: str) -> None:
    """
    Give target_user_id visibility of a project. Only the owner may share.

    Sharing with a user who already has a grant succeeds without adding a row.

    Raises:
        NotFoundError: the project does not exist
        AuthorizationError: the caller is not the owner
        InvalidInputError: the target user does not exist
    """
    logger.debug(f"User {caller_id} sharing project {project_id} with {target_user_id}")
    project = _get_project(db, project_id)
    if project.owner_id != caller_id:
        logger.info(f"User {caller_id} is not the owner of project {project_id}, share denied")
        raise AuthorizationError("Only the project owner can share the project")

    if not user_exists(db, target_user_id):
        raise InvalidInputError(f"Invalid user id {target_user_id}")

    try:
        visibility.grant(db, project_id, target_user_id)
        db.commit()
    except IntegrityError:
        # A concurrent share inserted the same pair first
        db.rollback()
        logger.info(f"Concurrent share of project {project_id} with {target_user_id}, grant already exists")
        return

    logger.info(f"Project {project_id} shared with user {target_user_id}")


def list_visible_projects(db: Session, user_id: str) -> list[dict]:
    """Projects the user holds a grant on, each with the user's unread notification count."""
    project_ids = visibility.visible_project_ids(db, user_id)
    if not project_ids:
        return []

    projects = (
        db.query(Project)
        .options(joinedload(Project.owner))
        .filter(Project.id.in_(project_ids))
        .order_by(Project.id)
        .all()
    )
    logger.debug(f"User {user_id} can see {len(projects)} projects")
    return _to_dicts(db, projects, unread_for=user_id)


def list_owned_projects(db: Session, user_id: str) -> list[dict]:
    projects = (
        db.query(Project)
        .options(joinedload(Project.owner))
        .filter(Project.owner_id == user_id)
        .order_by(Project.id)
        .all()
    )
    return _to_dicts(db, projects)


def list_all_projects(db: Session) -> list[dict]:
    """Every project regardless of grants. The Admin role is enforced by the HTTP layer."""
    projects = db.query(Project).options(joinedload(Project.owner)).order_by(Project.id).all()
    return _to_dicts(db, projects)


def get_project(db: Session, project_id: int, caller_id: str) -> dict:
    project = _get_project(db, project_id)
    if not visibility.can_view(db, project_id, caller_id):
        logger.info(f"User {caller_id} has no grant on project {project_id}")
        raise AuthorizationError("You do not have access to this project")
    return _to_dicts(db, [project], unread_for=caller_id)[0]


def update_project(db: Session, project_id: int, caller_id: str, name: str, description: str = "") -> Project:
    """
    Rename or redescribe a project. Owner only.

    Raises:
        NotFoundError: the project does not exist
        AuthorizationError: the caller is not the owner
    """
    logger.debug(f"User {caller_id} updating project {project_id}")
    project = _get_project(db, project_id)
    if project.owner_id != caller_id:
        logger.info(f"User {caller_id} is not the owner of project {project_id}, update denied")
        raise AuthorizationError("Only the project owner can update the project")

    project.name = name
    project.description = description or ""
    db.commit()
    db.refresh(project)
    logger.info(f"Project updated: {project.name} (ID: {project_id})")
    return project


def delete_project(db: Session, project_id: int, caller_id: str) -> None:
    """
    Delete a project with its grants, tasks, comments and notifications. Owner only.

    Raises:
        NotFoundError: the project does not exist
        AuthorizationError: the caller is not the owner
    """
    logger.debug(f"User {caller_id} deleting project {project_id}")
    project = _get_project(db, project_id)
    if project.owner_id != caller_id:
        logger.info(f"User {caller_id} is not the owner of project {project_id}, delete denied")
        raise AuthorizationError("Only the project owner can delete the project")

    db.delete(project)
    db.commit()
    logger.info(f"Project deleted: {project_id}")


def list_project_viewers(db: Session, project_id: int, caller_id: str) -> list[User]:
    """Users who can view the project; these are the candidates for task assignment."""
    _get_project(db, project_id)
    if not visibility.can_view(db, project_id, caller_id):
        raise AuthorizationError("You do not have access to this project")
    return list_users_by_ids(db, visibility.viewers_of(db, project_id))
