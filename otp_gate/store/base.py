"""
Challenge Store Interface
=========================
Contract shared by all challenge store backends.
"""

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Optional

from ..models import Clock, OtpChallenge, utc_now
from ..otp.hashing import generate_salt, hash_code


class ChallengeStore(ABC):
    """
    Owns OTP challenges, one per user.

    Implementations must make ``put`` (replace-on-create) and ``consume``
    atomic per user key.
    """

    def __init__(self, clock: Clock = utc_now):
        self.clock = clock

    def _new_challenge(self, user_id: str, code: str, ttl: int) -> OtpChallenge:
        now = self.clock()
        salt = generate_salt()
        return OtpChallenge(
            user_id=user_id,
            code_hash=hash_code(code, salt),
            salt=salt,
            created_at=now,
            expires_at=now + timedelta(seconds=ttl),
        )

    @abstractmethod
    async def put(self, user_id: str, code: str, ttl: int) -> OtpChallenge:
        """Store a new challenge, replacing any existing one for the user."""

    @abstractmethod
    async def get(self, user_id: str) -> Optional[OtpChallenge]:
        """Return the current challenge or None."""

    @abstractmethod
    async def consume(
        self, user_id: str, challenge_id: Optional[str] = None
    ) -> OtpChallenge:
        """
        Mark the current challenge consumed.

        Raises:
            NotFound: No challenge, already consumed, expired, or replaced
                (when ``challenge_id`` no longer matches)
        """

    @abstractmethod
    async def delete(self, user_id: str, challenge_id: Optional[str] = None) -> None:
        """
        Drop the challenge for the user.

        With ``challenge_id`` the challenge is only dropped if it has not been
        replaced since it was read.
        """
