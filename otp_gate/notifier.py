"""
Code Delivery
=============
Hands issued codes to a delivery channel.

The gate only enqueues: actual sending (email, SMS) is done by a worker
outside this package. A notifier that cannot accept the job raises
``DeliveryError`` immediately instead of blocking the login request.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Protocol
import structlog

from .exceptions import DeliveryError
from .models import User, utc_now

logger = structlog.get_logger(__name__)


class Notifier(Protocol):
    async def send(self, user: User, code: str) -> None:
        """Enqueue the code for delivery or raise DeliveryError."""
        ...


@dataclass
class OtpDelivery:
    """A queued delivery job."""
    user_id: str
    destination: str
    code: str
    queued_at: datetime = field(default_factory=utc_now)


class QueuedNotifier:
    """
    Puts delivery jobs onto a bounded asyncio queue.

    A full queue fails fast rather than waiting for a slot.
    """

    def __init__(self, queue: Optional[asyncio.Queue] = None, maxsize: int = 1000):
        self.queue = queue if queue is not None else asyncio.Queue(maxsize=maxsize)

    async def send(self, user: User, code: str) -> None:
        if not user.email:
            raise DeliveryError("user has no delivery address")

        job = OtpDelivery(user_id=user.id, destination=user.email, code=code)
        try:
            self.queue.put_nowait(job)
        except asyncio.QueueFull:
            logger.error("OTP delivery queue full", user_id=user.id)
            raise DeliveryError("delivery queue full")

        logger.info("OTP delivery queued", user_id=user.id, pending=self.queue.qsize())
