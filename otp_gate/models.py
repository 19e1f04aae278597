"""
OTP Gate Models
===============
Data models and enums for users, challenges and login attempts.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class User:
    """A panel account as seen by the gate."""
    id: str
    credential_hash: str
    name: str = ""
    email: str = ""
    exempt_flag: bool = False
    last_full_login_at: Optional[datetime] = None


@dataclass
class OtpChallenge:
    """An issued code awaiting validation."""
    user_id: str
    code_hash: str
    salt: str
    created_at: datetime
    expires_at: datetime
    consumed: bool = False
    challenge_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class LoginState(str, Enum):
    """Login attempt states."""
    AWAITING_PRIMARY_CREDENTIALS = "awaiting_primary_credentials"
    PRIMARY_VERIFIED = "primary_verified"
    BYPASS_GRANTED = "bypass_granted"
    AWAITING_OTP = "awaiting_otp"
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"


@dataclass
class LoginAttempt:
    """Request-scoped state of a single login."""
    state: LoginState = LoginState.AWAITING_PRIMARY_CREDENTIALS
    user: Optional[User] = None
    failed_otp_attempts: int = 0
    previous_session_token: Optional[str] = None
    session_token: Optional[str] = None
    attempt_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def is_authenticated(self) -> bool:
        return self.state == LoginState.AUTHENTICATED

    @property
    def is_rejected(self) -> bool:
        return self.state == LoginState.REJECTED
