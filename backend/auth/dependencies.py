"""
FastAPI dependencies for authentication and authorization.

This module provides dependency functions that can be used in route handlers to:
- Extract and validate the current user from a JWT bearer token
- Enforce role-based access control for admin-only endpoints
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from database import get_db
from models import User, ADMIN_ROLE
from auth.security import verify_token
from services.users import has_role

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme for JWT authentication
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Extract and validate the current user from the JWT bearer token.

    Raises:
        HTTPException: 401 if the token is missing, invalid, expired, of the
            wrong type, or refers to a user that no longer exists

    Example:
        @app.get("/api/protected")
        async def protected_route(user: User = Depends(get_current_user)):
            return {"user_id": user.id}
    """
    if not credentials or not credentials.credentials:
        logger.info("No authentication credentials provided")
        raise _unauthorized("Not authenticated")

    payload = verify_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("Invalid or expired token")

    if payload.get("type") != "access":
        logger.info(f"Invalid token type: {payload.get('type')}")
        raise _unauthorized("Invalid token type")

    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id:
        logger.info("Token payload missing 'sub' claim")
        raise _unauthorized("Invalid token payload")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        logger.info(f"User not found for id: {user_id}")
        raise _unauthorized("User not found")

    logger.debug(f"User authenticated via JWT: {user.username}")
    return user


def require_role(required_role: str):
    """
    Create a dependency that requires the caller to hold a named role.

    Example:
        @app.delete("/api/users/admin/{id}")
        async def delete_user(current_user: User = Depends(require_role("Admin"))):
            pass
    """

    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if not has_role(current_user, required_role):
            logger.info(
                f"Access denied: user {current_user.username} has roles {current_user.role_names}, "
                f"but '{required_role}' is required"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {required_role}",
            )
        return current_user

    return role_checker


async def get_current_admin(current_user: User = Depends(require_role(ADMIN_ROLE))) -> User:
    """Shortcut for Depends(require_role("Admin"))."""
    return current_user
