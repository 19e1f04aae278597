"""
Password Operations
===================
Argon2id hashing with bcrypt verification for legacy hashes.

Hashing is CPU-bound; the async variants run it in the default executor so
the event loop is not blocked during login.
"""

import asyncio

import bcrypt
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from .hasher import get_cached_hasher

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def hash_password_sync(password: str) -> str:
    """Hash a password using Argon2id."""
    if not password:
        raise ValueError("Password cannot be empty")
    return get_cached_hasher().hash(password)


def verify_password_sync(password: str, hash: str) -> bool:
    """Verify a password against an Argon2id or bcrypt hash."""
    if not password or not hash:
        return False

    if hash.startswith("$argon2"):
        try:
            return get_cached_hasher().verify(hash, password)
        except (VerifyMismatchError, VerificationError, InvalidHashError):
            return False

    if hash.startswith(BCRYPT_PREFIXES):
        try:
            return bcrypt.checkpw(password.encode("utf-8"), hash.encode("utf-8"))
        except ValueError:
            return False

    return False


def needs_rehash(hash: str) -> bool:
    """True for bcrypt hashes and Argon2 hashes with outdated parameters."""
    if not hash or hash.startswith(BCRYPT_PREFIXES):
        return True
    if hash.startswith("$argon2"):
        try:
            return get_cached_hasher().check_needs_rehash(hash)
        except InvalidHashError:
            return True
    return True


async def hash_password(password: str) -> str:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, hash_password_sync, password)


async def verify_password(password: str, hash: str) -> bool:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, verify_password_sync, password, hash)
