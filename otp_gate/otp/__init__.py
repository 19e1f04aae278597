"""
OTP Generation and Validation
=============================
Cryptographically random numeric codes with single-use, expiring challenges.
"""

from .hashing import generate_code, generate_salt, hash_code, verify_code_hash
from .generator import OTPGenerator

__all__ = [
    # Hashing
    "generate_code",
    "generate_salt",
    "hash_code",
    "verify_code_hash",
    # Generator
    "OTPGenerator",
]
