"""
Bypass Policy
=============
Decides, per login attempt, whether the OTP step can be skipped.

The decision is delegated to ``CanLoginDirectly`` strategies so deployments
can plug in their own rules (e.g. trusted networks) without subclassing the
user model.
"""

from datetime import datetime, timedelta
from typing import Optional, Protocol
import structlog

from .config import OtpGateConfig
from .models import Clock, User, utc_now

logger = structlog.get_logger(__name__)


class CanLoginDirectly(Protocol):
    """Capability: may this user skip the second factor right now?"""

    def should_bypass(self, user: User, now: datetime) -> bool:
        ...


class ExemptionStrategy:
    """Users flagged as exempt never see an OTP prompt."""

    def should_bypass(self, user: User, now: datetime) -> bool:
        return bool(user.exempt_flag)


class RecentLoginStrategy:
    """Skip OTP within ``window`` of the last full login."""

    def __init__(self, window: timedelta):
        self.window = window

    def should_bypass(self, user: User, now: datetime) -> bool:
        if user.last_full_login_at is None:
            return False
        return now - user.last_full_login_at <= self.window


class AnyOf:
    """Bypass when any of the wrapped strategies allows it."""

    def __init__(self, *strategies: CanLoginDirectly):
        self.strategies = strategies

    def should_bypass(self, user: User, now: datetime) -> bool:
        return any(s.should_bypass(user, now) for s in self.strategies)


def default_strategy(config: OtpGateConfig) -> CanLoginDirectly:
    """Exempt flag, or a full login within the configured bypass window."""
    return AnyOf(ExemptionStrategy(), RecentLoginStrategy(config.bypass_window))


class BypassPolicy:
    """
    Evaluates the bypass strategy against the current time.

    Holds no per-user state; the stored ``last_full_login_at`` is the only
    memory between requests.
    """

    def __init__(
        self,
        config: Optional[OtpGateConfig] = None,
        strategy: Optional[CanLoginDirectly] = None,
        clock: Clock = utc_now,
    ):
        self.config = config or OtpGateConfig()
        self.strategy = strategy or default_strategy(self.config)
        self.clock = clock

    def should_bypass(self, user: User) -> bool:
        decision = self.strategy.should_bypass(user, self.clock())
        logger.debug("Bypass evaluated", user_id=user.id, bypass=decision)
        return decision
