"""
OTP Challenge Stores
====================
In-memory and Redis backends holding one challenge per user.
"""

from .base import ChallengeStore
from .in_memory import InMemoryChallengeStore
from .redis_store import RedisChallengeStore, PUT_SCRIPT, CONSUME_SCRIPT, DELETE_IF_SCRIPT

__all__ = [
    # Interface
    "ChallengeStore",
    # Backends
    "InMemoryChallengeStore",
    "RedisChallengeStore",
    # Scripts
    "PUT_SCRIPT",
    "CONSUME_SCRIPT",
    "DELETE_IF_SCRIPT",
]
