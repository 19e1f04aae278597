"""
OTP Gate Configuration
======================
Operator-facing settings, passed explicitly into each component.
"""

import os
from dataclasses import dataclass
from datetime import timedelta

from .exceptions import ConfigError

ENV_PREFIX = "OTP_GATE_"

MIN_CODE_LENGTH = 4
MAX_CODE_LENGTH = 12


@dataclass(frozen=True)
class OtpGateConfig:
    """Configuration for OTP generation, bypass and retry behaviour."""
    ttl_seconds: int = 300  # 5 minutes
    code_length: int = 6
    bypass_window_seconds: int = 1200  # 20 minutes
    max_otp_attempts: int = 3
    delivery_timeout_seconds: float = 5.0  # Max wait for the notifier to accept a job
    update_last_login_on_bypass: bool = True
    expired_retention_seconds: int = 300  # Keep expired challenges this long
    redis_key_prefix: str = "otp_gate"

    def __post_init__(self):
        for name in (
            "ttl_seconds",
            "bypass_window_seconds",
            "max_otp_attempts",
            "delivery_timeout_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")

        if self.expired_retention_seconds < 0:
            raise ConfigError("expired_retention_seconds cannot be negative")

        if not MIN_CODE_LENGTH <= self.code_length <= MAX_CODE_LENGTH:
            raise ConfigError(
                f"code_length must be between {MIN_CODE_LENGTH} and {MAX_CODE_LENGTH}"
            )

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self.ttl_seconds)

    @property
    def bypass_window(self) -> timedelta:
        return timedelta(seconds=self.bypass_window_seconds)

    @classmethod
    def from_env(cls, environ=None) -> "OtpGateConfig":
        """
        Build a config from OTP_GATE_* environment variables.

        Unset variables fall back to the dataclass defaults.
        """
        environ = os.environ if environ is None else environ
        defaults = cls()

        def _int(name: str, default: int) -> int:
            raw = environ.get(ENV_PREFIX + name)
            if raw is None or raw == "":
                return default
            try:
                return int(raw)
            except ValueError:
                raise ConfigError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}")

        def _float(name: str, default: float) -> float:
            raw = environ.get(ENV_PREFIX + name)
            if raw is None or raw == "":
                return default
            try:
                return float(raw)
            except ValueError:
                raise ConfigError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}")

        def _bool(name: str, default: bool) -> bool:
            raw = environ.get(ENV_PREFIX + name)
            if raw is None or raw == "":
                return default
            value = raw.strip().lower()
            if value in ("1", "true", "yes", "on"):
                return True
            if value in ("0", "false", "no", "off"):
                return False
            raise ConfigError(f"{ENV_PREFIX}{name} must be a boolean, got {raw!r}")

        return cls(
            ttl_seconds=_int("TTL_SECONDS", defaults.ttl_seconds),
            code_length=_int("CODE_LENGTH", defaults.code_length),
            bypass_window_seconds=_int(
                "BYPASS_WINDOW_SECONDS", defaults.bypass_window_seconds
            ),
            max_otp_attempts=_int("MAX_OTP_ATTEMPTS", defaults.max_otp_attempts),
            delivery_timeout_seconds=_float(
                "DELIVERY_TIMEOUT_SECONDS", defaults.delivery_timeout_seconds
            ),
            update_last_login_on_bypass=_bool(
                "UPDATE_LAST_LOGIN_ON_BYPASS", defaults.update_last_login_on_bypass
            ),
            expired_retention_seconds=_int(
                "EXPIRED_RETENTION_SECONDS", defaults.expired_retention_seconds
            ),
            redis_key_prefix=environ.get(
                ENV_PREFIX + "REDIS_KEY_PREFIX", defaults.redis_key_prefix
            ),
        )
