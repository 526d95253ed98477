"""
Password hashing and bearer token handling for the Taskboard API.

Passwords are stored as Argon2id hashes. Access tokens are signed JWTs whose
"sub" claim is the user's id; they also carry the username, email and role
names so the frontend can render without another round trip.

Settings come from the environment:
    ENVIRONMENT                  production/staging make JWT_SECRET_KEY mandatory
    JWT_SECRET_KEY               signing key
    JWT_ALGORITHM                HS256, HS384 or HS512 (default HS512)
    ACCESS_TOKEN_EXPIRE_MINUTES  token lifetime, 1-1440 (default 120)
"""

import logging
import secrets
import os
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

from jose import JWTError, jwt
from passlib.context import CryptContext

logger = logging.getLogger(__name__)

SUPPORTED_ALGORITHMS = ("HS256", "HS384", "HS512")
DEFAULT_ALGORITHM = "HS512"
DEFAULT_EXPIRE_MINUTES = 120


def is_production_like() -> bool:
    """True when ENVIRONMENT is production or staging."""
    return os.environ.get("ENVIRONMENT", "development").lower() in ("production", "staging")


def _load_secret_key() -> str:
    key = os.environ.get("JWT_SECRET_KEY")
    if key:
        return key
    if is_production_like():
        raise ValueError(
            "JWT_SECRET_KEY must be set when ENVIRONMENT is production or staging. "
            "Create one with: openssl rand -base64 48"
        )
    logger.warning(
        "JWT_SECRET_KEY is not set, signing tokens with a random key for this process. "
        "Every restart logs all sessions out."
    )
    return "taskboard-dev-" + secrets.token_urlsafe(32)


def _load_algorithm() -> str:
    algorithm = os.environ.get("JWT_ALGORITHM", DEFAULT_ALGORITHM)
    if algorithm not in SUPPORTED_ALGORITHMS:
        logger.warning(f"JWT_ALGORITHM={algorithm} is not one of {SUPPORTED_ALGORITHMS}, falling back to {DEFAULT_ALGORITHM}")
        return DEFAULT_ALGORITHM
    return algorithm


def _load_expire_minutes() -> int:
    raw = os.environ.get("ACCESS_TOKEN_EXPIRE_MINUTES", str(DEFAULT_EXPIRE_MINUTES))
    try:
        minutes = int(raw)
    except ValueError:
        logger.warning(f"ACCESS_TOKEN_EXPIRE_MINUTES={raw!r} is not an integer, using {DEFAULT_EXPIRE_MINUTES}")
        return DEFAULT_EXPIRE_MINUTES
    # 1 minute to 24 hours
    if not 1 <= minutes <= 1440:
        logger.warning(f"ACCESS_TOKEN_EXPIRE_MINUTES={minutes} is outside 1-1440, using {DEFAULT_EXPIRE_MINUTES}")
        return DEFAULT_EXPIRE_MINUTES
    return minutes


SECRET_KEY = _load_secret_key()
ALGORITHM = _load_algorithm()
ACCESS_TOKEN_EXPIRE_MINUTES = _load_expire_minutes()

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    matches = pwd_context.verify(plain_password, hashed_password)
    if not matches:
        logger.debug("Password mismatch")
    return matches


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign an access token.

    Args:
        data: Claims to embed, at least "sub" (the user id)
        expires_delta: Lifetime override; defaults to ACCESS_TOKEN_EXPIRE_MINUTES

    Example:
        >>> token = create_access_token({"sub": user.id, "roles": ["Admin"]})
    """
    lifetime = expires_delta if expires_delta is not None else timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    expire = datetime.now(timezone.utc) + lifetime
    claims = {**data, "exp": expire, "type": "access"}
    logger.debug(f"Issuing access token for {data.get('sub')}, expires {expire.isoformat()}")
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode a token, checking signature and expiry. Returns None when it does not verify."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.info(f"Rejected token: {e}")
        return None
