"""
Authentication API endpoints.

This module provides REST API endpoints for:
- User registration
- Login (bearer token issuance)
- Current user lookup
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

import schemas
from database import get_db
from errors import InvalidInputError
from models import User
from auth.security import create_access_token
from auth.dependencies import get_current_user
from services import users as user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


# Request/Response schemas
class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)


class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    is_success: bool
    token: str = ""
    message: str = ""


def token_for(user: User) -> str:
    token_data = {
        "sub": user.id,
        "name": user.username,
        "email": user.email,
        "roles": user.role_names,
    }
    return create_access_token(token_data)


@router.post("/register", response_model=schemas.User, status_code=status.HTTP_201_CREATED)
def register(request: RegisterRequest, db: Session = Depends(get_db)):
    """
    Register a new user account.

    Raises:
        HTTPException: 409 if the username or email is already registered
    """
    try:
        user = user_service.register_user(db, request.username, request.email, request.password)
    except InvalidInputError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.detail)

    logger.critical(f"User registered successfully: {user.username} (ID: {user.id})")
    return user


@router.post("/login", response_model=LoginResponse)
def login(request: LoginRequest, db: Session = Depends(get_db)):
    """
    Login with username and password.

    Returns:
        A bearer token valid for ACCESS_TOKEN_EXPIRE_MINUTES

    Raises:
        HTTPException: 401 if the credentials are invalid
    """
    logger.info(f"Login attempt for username: {request.username}")

    user = user_service.authenticate_user(db, request.username, request.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )

    logger.critical(f"User logged in successfully: {user.username} (ID: {user.id})")
    return LoginResponse(is_success=True, token=token_for(user), message="User logged in")


@router.get("/me", response_model=schemas.User)
def get_current_user_info(current_user: User = Depends(get_current_user)):
    logger.debug(f"Fetching user info for: {current_user.username}")
    return current_user
