"""
OTP Generator
=============
Issues codes into the challenge store and validates submissions.
"""

from typing import TYPE_CHECKING, Optional
import structlog

from ..config import OtpGateConfig
from ..exceptions import NotFound, OtpAlreadyConsumed, OtpExpired, OtpMismatch
from ..models import Clock, OtpChallenge, utc_now
from .hashing import generate_code, verify_code_hash

if TYPE_CHECKING:
    from ..store.base import ChallengeStore

logger = structlog.get_logger(__name__)


class OTPGenerator:
    """High-level OTP generation and validation."""

    def __init__(
        self,
        store: "ChallengeStore",
        config: Optional[OtpGateConfig] = None,
        clock: Clock = utc_now,
    ):
        self.store = store
        self.config = config or OtpGateConfig()
        self.clock = clock

    async def generate(
        self,
        user_id: str,
        ttl: Optional[int] = None,
        code_length: Optional[int] = None,
    ) -> str:
        """
        Issue a new code for a user, replacing any previous challenge.

        Args:
            user_id: Owner of the challenge
            ttl: Lifetime in seconds (defaults to config)
            code_length: Number of digits (defaults to config)

        Returns:
            The plain code, for delivery by a notifier
        """
        ttl = self.config.ttl_seconds if ttl is None else ttl
        code_length = self.config.code_length if code_length is None else code_length

        code = generate_code(code_length)
        challenge = await self.store.put(user_id, code, ttl)

        logger.info(
            "OTP challenge created",
            user_id=user_id,
            challenge_id=challenge.challenge_id,
            expires_in=ttl,
        )
        return code

    async def validate(self, user_id: str, submitted_code: str) -> OtpChallenge:
        """
        Validate a submitted code and consume the challenge on success.

        Raises:
            NotFound: No challenge for the user
            OtpAlreadyConsumed: Challenge already used
            OtpExpired: Challenge past its expiry
            OtpMismatch: Code does not match
        """
        challenge = await self.store.get(user_id)
        if challenge is None:
            logger.warning("OTP validation without challenge", user_id=user_id)
            raise NotFound()

        if challenge.consumed:
            logger.warning(
                "OTP reuse attempt",
                user_id=user_id,
                challenge_id=challenge.challenge_id,
            )
            raise OtpAlreadyConsumed()

        if challenge.is_expired(self.clock()):
            logger.warning(
                "OTP expired",
                user_id=user_id,
                challenge_id=challenge.challenge_id,
            )
            raise OtpExpired()

        if not verify_code_hash(submitted_code or "", challenge.salt, challenge.code_hash):
            logger.warning(
                "Invalid OTP attempt",
                user_id=user_id,
                challenge_id=challenge.challenge_id,
            )
            raise OtpMismatch()

        try:
            consumed = await self.store.consume(user_id, challenge.challenge_id)
        except NotFound:
            # Another request consumed or replaced it between get and consume
            raise OtpAlreadyConsumed()

        logger.info(
            "OTP verified successfully",
            user_id=user_id,
            challenge_id=consumed.challenge_id,
        )
        return consumed
