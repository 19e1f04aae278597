"""
Session Manager
===============
Issues session tokens once a login is fully authenticated.
"""

import secrets
import threading
from typing import Dict, Optional, Protocol
import structlog

from .models import User

logger = structlog.get_logger(__name__)


class SessionManager(Protocol):
    async def establish(self, user: User, previous_token: Optional[str] = None) -> str:
        """Create a fresh session, revoking ``previous_token`` if given."""
        ...


class InMemorySessionManager:
    """
    Token-to-user map with rotation on every login.

    The pre-login token is always discarded so a session id planted before
    authentication never becomes an authenticated one.
    """

    def __init__(self, token_bytes: int = 32):
        self.token_bytes = token_bytes
        self._sessions: Dict[str, str] = {}
        self._lock = threading.Lock()

    async def establish(self, user: User, previous_token: Optional[str] = None) -> str:
        token = secrets.token_urlsafe(self.token_bytes)
        with self._lock:
            if previous_token:
                self._sessions.pop(previous_token, None)
            self._sessions[token] = user.id

        logger.info("Session established", user_id=user.id, rotated=bool(previous_token))
        return token

    def resolve(self, token: str) -> Optional[str]:
        """Return the user id for a live token."""
        with self._lock:
            return self._sessions.get(token)

    def revoke(self, token: str) -> None:
        with self._lock:
            self._sessions.pop(token, None)
