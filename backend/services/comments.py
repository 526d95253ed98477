"""
Task comments. Viewers of a project may read and write comments on its
tasks; only the author may edit or delete a comment. A new comment notifies
every viewer of the project.
"""

import logging

from sqlalchemy.orm import Session, joinedload

from errors import AuthorizationError, NotFoundError
from models import Comment, Task, User
from services.notifications import fan_out
from services.visibility import can_view

logger = logging.getLogger(__name__)


def comment_to_dict(comment: Comment) -> dict:
    return {
        "id": comment.id,
        "text": comment.text,
        "task_id": comment.task_id,
        "task_title": comment.task.title if comment.task else None,
        "author_id": comment.author_id,
        "author_username": comment.author.username if comment.author else None,
        "created_at": comment.created_at,
    }


def _get_task_for_viewer(db: Session, task_id: int, caller_id: str) -> Task:
    task = db.query(Task).filter(Task.id == task_id).first()
    if task is None:
        raise NotFoundError(f"No task with id {task_id} found")
    if not can_view(db, task.project_id, caller_id):
        logger.info(f"User {caller_id} has no access to project {task.project_id}")
        raise AuthorizationError("You do not have access to this project")
    return task


def _get_comment_for_author(db: Session, comment_id: int, caller_id: str) -> Comment:
    comment = (
        db.query(Comment)
        .options(joinedload(Comment.task), joinedload(Comment.author))
        .filter(Comment.id == comment_id)
        .first()
    )
    if comment is None:
        raise NotFoundError(f"No comment with id {comment_id} found")
    if comment.author_id != caller_id:
        logger.info(f"User {caller_id} is not the author of comment {comment_id}")
        raise AuthorizationError("Can only modify your own comments")
    return comment


def list_comments(db: Session, task_id: int, caller_id: str) -> list[dict]:
    _get_task_for_viewer(db, task_id, caller_id)
    comments = (
        db.query(Comment)
        .options(joinedload(Comment.task), joinedload(Comment.author))
        .filter(Comment.task_id == task_id)
        .order_by(Comment.created_at, Comment.id)
        .all()
    )
    return [comment_to_dict(c) for c in comments]


def create_comment(db: Session, task_id: int, caller_id: str, text: str) -> dict:
    """
    Add a comment and notify the project's viewers in one transaction.

    Raises:
        NotFoundError: the task does not exist
        AuthorizationError: the caller cannot view the task's project
    """
    logger.debug(f"User {caller_id} commenting on task {task_id}")
    task = _get_task_for_viewer(db, task_id, caller_id)
    author = db.query(User).filter(User.id == caller_id).one()

    try:
        comment = Comment(text=text, task_id=task.id, author_id=caller_id)
        db.add(comment)
        db.flush()
        fan_out(db, task.project_id, task.id, f"{author.username} commented on {task.title}")
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Comment {comment.id} created on task {task_id} by user {caller_id}")
    return comment_to_dict(comment)


def update_comment(db: Session, comment_id: int, caller_id: str, text: str) -> dict:
    comment = _get_comment_for_author(db, comment_id, caller_id)
    comment.text = text
    db.commit()
    db.refresh(comment)
    return comment_to_dict(comment)


def delete_comment(db: Session, comment_id: int, caller_id: str) -> None:
    comment = _get_comment_for_author(db, comment_id, caller_id)
    db.delete(comment)
    db.commit()
    logger.info(f"Comment deleted: {comment_id}")
