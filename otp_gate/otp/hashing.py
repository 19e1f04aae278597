"""
OTP Hashing Utilities
=====================
Code generation and keyed hashing for OTP challenges.

Challenges never hold the plain code. Each one carries a random salt that
keys an HMAC-SHA256 over the digits, and submissions are checked by
recomputing that digest.
"""

import hashlib
import hmac
import secrets

SALT_BYTES = 16


def generate_code(length: int = 6) -> str:
    """Return ``length`` uniformly random digits, leading zeros kept."""
    if length <= 0:
        raise ValueError("Code length must be positive")
    return f"{secrets.randbelow(10 ** length):0{length}d}"


def generate_salt() -> str:
    return secrets.token_hex(SALT_BYTES)


def hash_code(code: str, salt: str) -> str:
    """HMAC-SHA256 of the code keyed with the challenge salt, hex encoded."""
    return hmac.new(salt.encode(), code.encode(), hashlib.sha256).hexdigest()


def verify_code_hash(code: str, salt: str, stored_hash: str) -> bool:
    # compare_digest keeps the check constant-time
    return hmac.compare_digest(hash_code(code, salt), stored_hash)
