"""
Credential Verification
=======================
Primary username/password check, the first step of every login.
"""

from typing import Protocol
import structlog

from .exceptions import AuthError
from .models import User
from .password import get_dummy_hash, hash_password, needs_rehash, verify_password
from .users import UserRepository

logger = structlog.get_logger(__name__)


class CredentialVerifier(Protocol):
    async def verify(self, identifier: str, secret: str) -> User:
        """Return the user or raise AuthError."""
        ...


class PasswordCredentialVerifier:
    """
    Verifies an email/password pair against stored password hashes.

    Unknown identifiers are checked against a dummy hash so both failure
    modes cost the same and raise the same error. Legacy bcrypt hashes and
    Argon2 hashes with stale parameters are upgraded on a successful login.
    """

    def __init__(self, users: UserRepository):
        self.users = users

    async def verify(self, identifier: str, secret: str) -> User:
        user = await self.users.find_by_identifier(identifier)

        if user is None:
            await verify_password(secret or "", get_dummy_hash())
            logger.info("Primary credentials rejected")
            raise AuthError("invalid credentials")

        if not await verify_password(secret or "", user.credential_hash):
            logger.info("Primary credentials rejected")
            raise AuthError("invalid credentials")

        if needs_rehash(user.credential_hash):
            user.credential_hash = await hash_password(secret)
            await self.users.save(user)
            logger.info("Password hash upgraded", user_id=user.id)

        return user
