"""
Login Orchestrator
==================
Sequences primary credentials, bypass policy, OTP and session establishment.

Usage:
    gate = LoginOrchestrator(verifier, notifier, sessions, store, users)

    attempt = await gate.begin(email, password)
    if not attempt.is_authenticated:
        # prompt for the code that was just queued for delivery
        attempt = await gate.submit_otp(attempt, code)
    token = attempt.session_token
"""

import asyncio
from typing import Optional
import structlog

from .bypass import BypassPolicy
from .config import OtpGateConfig
from .credentials import CredentialVerifier
from .exceptions import (
    AuthError,
    DeliveryError,
    DeliveryFailed,
    InvalidCredentials,
    InvalidLoginState,
    OtpError,
    OtpRetryLimitExceeded,
)
from .models import Clock, LoginAttempt, LoginState, User, utc_now
from .notifier import Notifier
from .otp import OTPGenerator
from .sessions import SessionManager
from .store.base import ChallengeStore
from .users import UserRepository

logger = structlog.get_logger(__name__)


class LoginOrchestrator:
    """
    Drives a ``LoginAttempt`` through its states.

    Every failure that ends the attempt moves it to ``REJECTED`` before the
    error is raised; the caller must start over with ``begin``.
    """

    def __init__(
        self,
        verifier: CredentialVerifier,
        notifier: Notifier,
        sessions: SessionManager,
        store: ChallengeStore,
        users: UserRepository,
        config: Optional[OtpGateConfig] = None,
        bypass_policy: Optional[BypassPolicy] = None,
        clock: Clock = utc_now,
    ):
        self.config = config or OtpGateConfig()
        self.verifier = verifier
        self.notifier = notifier
        self.sessions = sessions
        self.store = store
        self.users = users
        self.clock = clock
        self.generator = OTPGenerator(store, self.config, clock=clock)
        self.bypass_policy = bypass_policy or BypassPolicy(self.config, clock=clock)

    async def begin(
        self,
        identifier: str,
        secret: str,
        previous_session_token: Optional[str] = None,
    ) -> LoginAttempt:
        """
        Check primary credentials and either authenticate or issue a code.

        Returns:
            The attempt, either AUTHENTICATED or AWAITING_OTP

        Raises:
            InvalidCredentials: Unknown identifier or wrong secret
            DeliveryFailed: The code could not be queued for delivery

        Challenge store errors are re-raised once the attempt is rejected.
        """
        attempt = LoginAttempt(previous_session_token=previous_session_token)
        log = logger.bind(attempt_id=attempt.attempt_id)

        try:
            user = await self.verifier.verify(identifier, secret)
        except AuthError:
            attempt.state = LoginState.REJECTED
            log.info("Login rejected at primary credentials")
            raise InvalidCredentials() from None

        attempt.user = user
        attempt.state = LoginState.PRIMARY_VERIFIED
        log = log.bind(user_id=user.id)

        if self.bypass_policy.should_bypass(user):
            attempt.state = LoginState.BYPASS_GRANTED
            log.info("OTP bypass granted", exempt=user.exempt_flag)
            await self._authenticate(
                attempt, record_login=self.config.update_last_login_on_bypass
            )
            return attempt

        try:
            code = await self.generator.generate(user.id)
        except Exception as e:
            attempt.state = LoginState.REJECTED
            log.error("OTP challenge could not be stored", error=str(e) or type(e).__name__)
            raise

        try:
            await asyncio.wait_for(
                self.notifier.send(user, code),
                timeout=self.config.delivery_timeout_seconds,
            )
        except (DeliveryError, asyncio.TimeoutError) as e:
            attempt.state = LoginState.REJECTED
            await self.store.delete(user.id)
            log.error("OTP delivery failed", error=str(e) or type(e).__name__)
            raise DeliveryFailed()

        attempt.state = LoginState.AWAITING_OTP
        log.info("Awaiting OTP")
        return attempt

    async def submit_otp(self, attempt: LoginAttempt, code: str) -> LoginAttempt:
        """
        Validate a submitted code for an attempt in AWAITING_OTP.

        Raises:
            OtpError: Wrong, expired, used or missing code; the attempt
                stays in AWAITING_OTP and may be retried
            OtpRetryLimitExceeded: Too many failures; the attempt is rejected
            InvalidLoginState: The attempt is not waiting for a code
        """
        if attempt.state != LoginState.AWAITING_OTP or attempt.user is None:
            raise InvalidLoginState()

        user = attempt.user
        log = logger.bind(attempt_id=attempt.attempt_id, user_id=user.id)

        try:
            await self.generator.validate(user.id, code)
        except OtpError as e:
            attempt.failed_otp_attempts += 1
            remaining = self.config.max_otp_attempts - attempt.failed_otp_attempts
            if remaining <= 0:
                attempt.state = LoginState.REJECTED
                await self.store.delete(user.id)
                log.warning("OTP retry limit exceeded", reason=e.code)
                raise OtpRetryLimitExceeded()
            log.info("OTP rejected", reason=e.code, remaining=remaining)
            raise

        await self._authenticate(attempt, record_login=True)
        return attempt

    async def _authenticate(self, attempt: LoginAttempt, record_login: bool) -> None:
        user: User = attempt.user

        if record_login:
            user.last_full_login_at = self.clock()
            await self.users.save(user)

        attempt.state = LoginState.AUTHENTICATED
        attempt.session_token = await self.sessions.establish(
            user, attempt.previous_session_token
        )
        # Consumed challenges stay until expiry so replays report reuse
        residual = await self.store.get(user.id)
        if residual is not None and not residual.consumed:
            await self.store.delete(user.id, residual.challenge_id)

        logger.info(
            "Login authenticated",
            attempt_id=attempt.attempt_id,
            user_id=user.id,
        )
