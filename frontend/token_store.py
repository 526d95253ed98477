"""
Per-session bearer token storage.

Each browser session (identified by an opaque session id) holds at most one
token. Tokens from one session are never visible to another.
"""

import logging
import threading
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class SessionTokenStore:
    """In-memory token store keyed by session id."""

    def __init__(self):
        self._tokens: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get_token(self, session_id: str) -> Optional[str]:
        with self._lock:
            return self._tokens.get(session_id)

    def set_token(self, session_id: str, token: str) -> None:
        with self._lock:
            self._tokens[session_id] = token
        logger.debug(f"Stored token for session {session_id}")

    def clear_token(self, session_id: str) -> None:
        with self._lock:
            self._tokens.pop(session_id, None)
        logger.debug(f"Cleared token for session {session_id}")
