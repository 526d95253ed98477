"""
Identity store: user records, roles, registration and profile management.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from auth.security import hash_password, verify_password
from errors import AuthorizationError, InvalidInputError, NotFoundError
from models import Role, User

logger = logging.getLogger(__name__)


def get_user_or_none(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def user_exists(db: Session, user_id: str) -> bool:
    return db.query(User.id).filter(User.id == user_id).first() is not None


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.username).all()


def list_users_by_ids(db: Session, user_ids) -> list[User]:
    ids = list(user_ids)
    if not ids:
        return []
    return db.query(User).filter(User.id.in_(ids)).order_by(User.username).all()


def get_user(db: Session, user_id: str) -> User:
    user = get_user_or_none(db, user_id)
    if user is None:
        raise NotFoundError(f"No user with id {user_id} found")
    return user


def has_role(user: User, role_name: str) -> bool:
    return role_name in user.role_names


def list_users_with_role(db: Session, role_name: str) -> list[User]:
    return db.query(User).join(User.roles).filter(Role.name == role_name).all()


def ensure_role(db: Session, role_name: str) -> Role:
    """Return the named role, creating it (flushed, not committed) if missing."""
    role = db.query(Role).filter(Role.name == role_name).first()
    if role is None:
        role = Role(name=role_name)
        db.add(role)
        db.flush()
        logger.info(f"Created role {role_name}")
    return role


def assign_role(db: Session, user: User, role_name: str) -> None:
    role = ensure_role(db, role_name)
    if role not in user.roles:
        user.roles.append(role)
        db.flush()


def _check_unique(db: Session, username: Optional[str], email: Optional[str], exclude_id: Optional[str] = None) -> None:
    if username is not None:
        query = db.query(User.id).filter(User.username == username)
        if exclude_id:
            query = query.filter(User.id != exclude_id)
        if query.first():
            raise InvalidInputError(f"Username '{username}' is already in use")
    if email is not None:
        query = db.query(User.id).filter(User.email == email)
        if exclude_id:
            query = query.filter(User.id != exclude_id)
        if query.first():
            raise InvalidInputError(f"Email '{email}' is already in use")


def register_user(db: Session, username: str, email: str, password: str) -> User:
    """Create a user with a hashed password. Raises InvalidInputError if username or email is taken."""
    logger.info(f"Registration attempt for username: {username}")
    _check_unique(db, username, email)

    user = User(username=username, email=email, password_hash=hash_password(password))
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"User registered: {user.username} (ID: {user.id})")
    return user


def authenticate_user(db: Session, username: str, password: str) -> Optional[User]:
    """Return the user when the password matches, None otherwise."""
    user = db.query(User).filter(User.username == username).first()
    if user is None:
        logger.info(f"Login failed: user not found: {username}")
        return None
    if not verify_password(password, user.password_hash):
        logger.info(f"Login failed: invalid password: {username}")
        return None
    return user


def update_user(
    db: Session,
    user_id: str,
    caller_id: str,
    username: Optional[str] = None,
    email: Optional[str] = None,
    password: Optional[str] = None,
) -> User:
    """
    Update a user's own profile.

    Raises:
        NotFoundError: the user does not exist
        AuthorizationError: the caller is not the user
        InvalidInputError: the new username or email is taken
    """
    logger.debug(f"User {caller_id} updating user {user_id}")
    user = get_user(db, user_id)
    if user.id != caller_id:
        logger.info(f"User {caller_id} denied update of user {user_id}")
        raise AuthorizationError("You can only update your own profile")

    _check_unique(db, username, email, exclude_id=user.id)

    if username is not None:
        user.username = username
    if email is not None:
        user.email = email
    if password:
        user.password_hash = hash_password(password)

    db.commit()
    db.refresh(user)
    logger.info(f"User updated: {user.username} (ID: {user.id})")
    return user


def delete_user(db: Session, user_id: str, caller_id: str) -> None:
    """Delete the caller's own account, cascading to owned projects, grants, comments and notifications."""
    user = get_user(db, user_id)
    if user.id != caller_id:
        logger.info(f"User {caller_id} denied deletion of user {user_id}")
        raise AuthorizationError("You can only delete your own account")
    db.delete(user)
    db.commit()
    logger.info(f"User deleted: {user_id}")


def delete_user_as_admin(db: Session, user_id: str) -> None:
    """Delete any user. Admin role is enforced by the HTTP layer."""
    user = get_user(db, user_id)
    db.delete(user)
    db.commit()
    logger.info(f"User deleted by admin: {user_id}")
