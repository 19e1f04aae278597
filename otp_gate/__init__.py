"""
OTP Gate
========
One-time-password second factor for admin panel logins.
"""

__version__ = "0.1.0"

# Config
from otp_gate.config import OtpGateConfig

# Errors
from otp_gate.exceptions import (
    OtpGateError,
    ConfigError,
    InvalidCredentials,
    OtpError,
    NotFound,
    OtpExpired,
    OtpMismatch,
    OtpAlreadyConsumed,
    OtpRetryLimitExceeded,
    DeliveryFailed,
    InvalidLoginState,
    AuthError,
    DeliveryError,
)

# Models
from otp_gate.models import User, OtpChallenge, LoginState, LoginAttempt

# OTP
from otp_gate.otp import OTPGenerator, generate_code

# Stores
from otp_gate.store import (
    ChallengeStore,
    InMemoryChallengeStore,
    RedisChallengeStore,
)

# Bypass
from otp_gate.bypass import (
    BypassPolicy,
    CanLoginDirectly,
    ExemptionStrategy,
    RecentLoginStrategy,
    AnyOf,
)

# Collaborators
from otp_gate.credentials import CredentialVerifier, PasswordCredentialVerifier
from otp_gate.notifier import Notifier, QueuedNotifier, OtpDelivery
from otp_gate.sessions import SessionManager, InMemorySessionManager
from otp_gate.users import UserRepository, InMemoryUserRepository

# Orchestrator
from otp_gate.orchestrator import LoginOrchestrator

__all__ = [
    # Config
    "OtpGateConfig",
    # Errors
    "OtpGateError",
    "ConfigError",
    "InvalidCredentials",
    "OtpError",
    "NotFound",
    "OtpExpired",
    "OtpMismatch",
    "OtpAlreadyConsumed",
    "OtpRetryLimitExceeded",
    "DeliveryFailed",
    "InvalidLoginState",
    "AuthError",
    "DeliveryError",
    # Models
    "User",
    "OtpChallenge",
    "LoginState",
    "LoginAttempt",
    # OTP
    "OTPGenerator",
    "generate_code",
    # Stores
    "ChallengeStore",
    "InMemoryChallengeStore",
    "RedisChallengeStore",
    # Bypass
    "BypassPolicy",
    "CanLoginDirectly",
    "ExemptionStrategy",
    "RecentLoginStrategy",
    "AnyOf",
    # Collaborators
    "CredentialVerifier",
    "PasswordCredentialVerifier",
    "Notifier",
    "QueuedNotifier",
    "OtpDelivery",
    "SessionManager",
    "InMemorySessionManager",
    "UserRepository",
    "InMemoryUserRepository",
    # Orchestrator
    "LoginOrchestrator",
]
