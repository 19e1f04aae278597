"""
Seed the default panel accounts.

Usage:
    python -m otp_gate.seed
"""

import asyncio
from typing import List

import structlog

from .log_setup import setup_logging
from .models import User
from .password import hash_password
from .users import InMemoryUserRepository

logger = structlog.get_logger(__name__)

DEFAULT_USERS = [
    {"name": "User 1", "email": "user1@gmail.com", "password": "password"},
    {"name": "Admin User", "email": "admin@gmail.com", "password": "@admin123"},
]


async def seed_users(repository: InMemoryUserRepository) -> List[User]:
    """
    Create the default accounts, skipping emails that already exist.

    ``User 1`` gets the stock factory password ``password``; change it before
    exposing a seeded panel.

    Returns:
        Users created by this run
    """
    created = []
    for account in DEFAULT_USERS:
        if await repository.find_by_identifier(account["email"]) is not None:
            logger.info("Seed user exists, skipping", email=account["email"])
            continue

        user = await repository.create(
            name=account["name"],
            email=account["email"],
            credential_hash=await hash_password(account["password"]),
        )
        created.append(user)
        logger.info("Seed user created", user_id=user.id, email=user.email)

    return created


def main() -> None:
    setup_logging(service_name="otp-gate-seed", json_output=False)
    created = asyncio.run(seed_users(InMemoryUserRepository()))
    logger.info("Seeding complete", created=len(created))


if __name__ == "__main__":
    main()
