"""
Client-side view of who is logged in.

Claims are read from the stored token without verifying the signature; the
API verifies every request, so the client only uses them for display and
for deciding which views to offer.
"""

import logging
from typing import Callable, List, Optional

from jose import JWTError, jwt

from frontend.token_store import SessionTokenStore

logger = logging.getLogger(__name__)

ADMIN_ROLE = "Admin"


def _claims(token: Optional[str]) -> dict:
    if not token:
        return {}
    try:
        return jwt.get_unverified_claims(token)
    except JWTError as e:
        logger.info(f"Could not read token claims: {e}")
        return {}


def get_user_id(token: Optional[str]) -> Optional[str]:
    """The user id from the "sub" claim (or "id" for older tokens), None if unreadable."""
    claims = _claims(token)
    return claims.get("sub") or claims.get("id")


def get_roles(token: Optional[str]) -> List[str]:
    roles = _claims(token).get("roles") or []
    if isinstance(roles, str):
        return [roles]
    return list(roles)


class AuthState:
    """Authentication state of one session, with change listeners for the UI."""

    def __init__(self, store: SessionTokenStore, session_id: str):
        self.store = store
        self.session_id = session_id
        self._listeners: List[Callable[[], None]] = []

    @property
    def token(self) -> Optional[str]:
        return self.store.get_token(self.session_id)

    @property
    def is_authenticated(self) -> bool:
        return get_user_id(self.token) is not None

    @property
    def user_id(self) -> Optional[str]:
        return get_user_id(self.token)

    @property
    def roles(self) -> List[str]:
        return get_roles(self.token)

    @property
    def is_admin(self) -> bool:
        return ADMIN_ROLE in self.roles

    def subscribe(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def mark_authenticated(self, token: str) -> None:
        self.store.set_token(self.session_id, token)
        self._notify()

    def mark_logged_out(self) -> None:
        self.store.clear_token(self.session_id)
        self._notify()

    def _notify(self) -> None:
        for listener in self._listeners:
            listener()
