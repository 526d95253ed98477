"""
Project visibility index and ownership rule.

A grant (ProjectVisibility row) lets one user view one project. The owner,
every admin, and every user the owner shares with hold a grant. Ownership is
the single project.owner_id column and is what authorizes mutations.

Nothing here is cached; every call queries the session. grant() does not
commit, so callers can batch grants into their own transaction.
"""

import logging
from typing import Iterable, Set

from sqlalchemy.orm import Session

from models import Project, ProjectVisibility

logger = logging.getLogger(__name__)


def grant(db: Session, project_id: int, user_id: str) -> ProjectVisibility:
    """
    Grant user_id read access to project_id.

    Idempotent: if a grant already exists for the pair it is returned and no
    row is added. The new row is flushed but not committed.
    """
    existing = (
        db.query(ProjectVisibility)
        .filter(ProjectVisibility.project_id == project_id, ProjectVisibility.user_id == user_id)
        .first()
    )
    if existing is not None:
        logger.debug(f"User {user_id} already has a grant on project {project_id}")
        return existing

    visibility = ProjectVisibility(project_id=project_id, user_id=user_id)
    db.add(visibility)
    db.flush()
    logger.debug(f"Granted user {user_id} visibility on project {project_id}")
    return visibility


def grant_many(db: Session, project_id: int, user_ids: Iterable[str]) -> list[ProjectVisibility]:
    """Batch-insert grants for a freshly created project, one per distinct user."""
    grants = [ProjectVisibility(project_id=project_id, user_id=user_id) for user_id in sorted(set(user_ids))]
    db.add_all(grants)
    db.flush()
    logger.debug(f"Granted {len(grants)} users visibility on project {project_id}")
    return grants


def can_view(db: Session, project_id: int, user_id: str) -> bool:
    """True iff a grant exists for (project_id, user_id)."""
    found = (
        db.query(ProjectVisibility.id)
        .filter(ProjectVisibility.project_id == project_id, ProjectVisibility.user_id == user_id)
        .first()
    )
    return found is not None


def viewers_of(db: Session, project_id: int) -> Set[str]:
    """All user ids holding a grant on the project."""
    rows = db.query(ProjectVisibility.user_id).filter(ProjectVisibility.project_id == project_id).all()
    return {row.user_id for row in rows}


def visible_project_ids(db: Session, user_id: str) -> list[int]:
    rows = db.query(ProjectVisibility.project_id).filter(ProjectVisibility.user_id == user_id).all()
    return [row.project_id for row in rows]


def is_owner(db: Session, project_id: int, user_id: str) -> bool:
    """True iff the project exists and its owner_id equals user_id."""
    owner_id = db.query(Project.owner_id).filter(Project.id == project_id).scalar()
    return owner_id is not None and owner_id == user_id
