"""
OTP Gate - Password Hashing
===========================
Argon2id password hashing for the reference credential verifier.

- New passwords are hashed with Argon2id
- bcrypt hashes (legacy panel accounts) still verify
- ``needs_rehash`` flags hashes that should be upgraded after login
"""

from .hasher import get_cached_hasher, get_dummy_hash
from .ops import (
    hash_password,
    hash_password_sync,
    needs_rehash,
    verify_password,
    verify_password_sync,
)

__all__ = [
    # Hasher
    "get_cached_hasher",
    "get_dummy_hash",
    # Async Operations
    "hash_password",
    "verify_password",
    # Sync Operations
    "hash_password_sync",
    "verify_password_sync",
    # Utils
    "needs_rehash",
]
