"""
Shared fixtures for OTP gate tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from otp_gate.config import OtpGateConfig
from otp_gate.store import InMemoryChallengeStore


class FakeClock:
    """Controllable clock; ``advance`` moves time forward in seconds."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return OtpGateConfig()


@pytest.fixture
def store(clock):
    return InMemoryChallengeStore(clock=clock)
