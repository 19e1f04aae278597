"""
In-Memory Challenge Store
=========================
Process-local challenge store for single-instance deployments and testing.
"""

import threading
from dataclasses import replace
from typing import Dict, Optional
import structlog

from ..exceptions import NotFound
from ..models import Clock, OtpChallenge, utc_now
from .base import ChallengeStore

logger = structlog.get_logger(__name__)


class InMemoryChallengeStore(ChallengeStore):
    """
    Dict-backed challenge store.

    Use RedisChallengeStore when running more than one process.
    """

    def __init__(self, clock: Clock = utc_now):
        super().__init__(clock)
        self._challenges: Dict[str, OtpChallenge] = {}
        self._lock = threading.Lock()

    async def put(self, user_id: str, code: str, ttl: int) -> OtpChallenge:
        challenge = self._new_challenge(user_id, code, ttl)
        with self._lock:
            self._challenges[user_id] = challenge
        return replace(challenge)

    async def get(self, user_id: str) -> Optional[OtpChallenge]:
        with self._lock:
            challenge = self._challenges.get(user_id)
            # Callers get a snapshot; only consume() may flip the flag
            return replace(challenge) if challenge else None

    async def consume(
        self, user_id: str, challenge_id: Optional[str] = None
    ) -> OtpChallenge:
        now = self.clock()
        with self._lock:
            challenge = self._challenges.get(user_id)
            if (
                challenge is None
                or challenge.consumed
                or challenge.is_expired(now)
                or (challenge_id is not None and challenge.challenge_id != challenge_id)
            ):
                raise NotFound()
            challenge.consumed = True
            return replace(challenge)

    async def delete(self, user_id: str, challenge_id: Optional[str] = None) -> None:
        with self._lock:
            challenge = self._challenges.get(user_id)
            if challenge is None:
                return
            if challenge_id is None or challenge.challenge_id == challenge_id:
                del self._challenges[user_id]

    def purge_expired(self, retention_seconds: int = 0) -> int:
        """
        Remove challenges expired for longer than ``retention_seconds``.

        Returns:
            Number of challenges removed
        """
        now = self.clock()
        with self._lock:
            expired = [
                user_id for user_id, challenge in self._challenges.items()
                if (now - challenge.expires_at).total_seconds() > retention_seconds
            ]
            for user_id in expired:
                del self._challenges[user_id]

        if expired:
            logger.debug("Purged expired OTP challenges", count=len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._challenges)
