"""
Password Hasher
===============
Argon2id password hasher configuration.
"""

from functools import lru_cache

from argon2 import PasswordHasher, Type


@lru_cache(maxsize=1)
def get_cached_hasher() -> PasswordHasher:
    """Get the shared Argon2id hasher."""
    return PasswordHasher(
        time_cost=3,        # Number of iterations
        memory_cost=65536,  # 64MB memory (64 * 1024 KB)
        parallelism=4,
        hash_len=32,
        salt_len=16,
        type=Type.ID,
    )


@lru_cache(maxsize=1)
def get_dummy_hash() -> str:
    """
    Hash verified against when the account does not exist.

    Keeps the cost of a failed lookup equal to a failed password check.
    """
    return get_cached_hasher().hash("otp-gate-dummy-password")
