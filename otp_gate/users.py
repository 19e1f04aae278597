"""
User Repository
===============
Lookup and persistence seam for panel accounts.
"""

import threading
import uuid
from dataclasses import replace
from typing import Dict, List, Optional, Protocol

from .models import User


class UserRepository(Protocol):
    """What the gate needs from the host application's user storage."""

    async def find_by_identifier(self, identifier: str) -> Optional[User]:
        ...

    async def save(self, user: User) -> None:
        ...


class InMemoryUserRepository:
    """Process-local user storage, keyed by id and looked up by email."""

    def __init__(self):
        self._users: Dict[str, User] = {}
        self._lock = threading.Lock()

    async def find_by_identifier(self, identifier: str) -> Optional[User]:
        needle = (identifier or "").strip().lower()
        with self._lock:
            for user in self._users.values():
                if user.email.lower() == needle:
                    return replace(user)
        return None

    async def get(self, user_id: str) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
            return replace(user) if user else None

    async def save(self, user: User) -> None:
        with self._lock:
            self._users[user.id] = replace(user)

    async def create(self, **fields) -> User:
        user_id = fields.pop("id", None) or str(uuid.uuid4())
        user = User(id=user_id, **fields)
        await self.save(user)
        return user

    def all(self) -> List[User]:
        with self._lock:
            return [replace(u) for u in self._users.values()]
