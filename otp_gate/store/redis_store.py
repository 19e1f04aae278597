"""
Redis Challenge Store
=====================
Redis-backed challenge store using Lua scripts for atomic operations.
"""

from datetime import datetime, timezone
from typing import Dict, Optional
import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from ..config import OtpGateConfig
from ..exceptions import NotFound
from ..models import Clock, OtpChallenge, utc_now
from .base import ChallengeStore

logger = structlog.get_logger(__name__)

# Replace-on-create: drop the old hash and write the new one in one step.
# Expiry is relative so the server clock alone decides when the key goes.
PUT_SCRIPT = """
local key = KEYS[1]
redis.call('DEL', key)
redis.call('HSET', key,
    'challenge_id', ARGV[1],
    'user_id', ARGV[2],
    'code_hash', ARGV[3],
    'salt', ARGV[4],
    'created_at', ARGV[5],
    'expires_at', ARGV[6],
    'consumed', '0')
redis.call('EXPIRE', key, ARGV[7])
return 1
"""

# Compare-and-set on the consumed flag
CONSUME_SCRIPT = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local expected_id = ARGV[2]

local data = redis.call('HMGET', key, 'challenge_id', 'expires_at', 'consumed')
if not data[1] then
    return {}
end
if data[3] == '1' then
    return {}
end
if now > tonumber(data[2]) then
    return {}
end
if expected_id ~= '' and expected_id ~= data[1] then
    return {}
end

redis.call('HSET', key, 'consumed', '1')
return redis.call('HGETALL', key)
"""

# Delete only while the stored challenge is still the expected one
DELETE_IF_SCRIPT = """
local key = KEYS[1]
if redis.call('HGET', key, 'challenge_id') == ARGV[1] then
    return redis.call('DEL', key)
end
return 0
"""


def _decode(value) -> str:
    return value.decode() if isinstance(value, bytes) else str(value)


def _to_epoch(value: datetime) -> str:
    return repr(value.timestamp())


def _from_epoch(value) -> datetime:
    return datetime.fromtimestamp(float(_decode(value)), tz=timezone.utc)


class RedisChallengeStore(ChallengeStore):
    """
    Redis-backed challenge store.

    Keys expire ``retention_seconds`` after the challenge itself so that late
    submissions still resolve to an expired challenge rather than a missing one.

    Scripts are registered with the client, which reloads them on NOSCRIPT
    after a restart, failover or ``SCRIPT FLUSH``.
    """

    def __init__(
        self,
        redis_client,
        key_prefix: str = "otp_gate",
        retention_seconds: int = 300,
        clock: Clock = utc_now,
    ):
        """
        Args:
            redis_client: Async Redis client
            key_prefix: Namespace for challenge keys
            retention_seconds: Extra lifetime of the key after expiry
            clock: Source of the current time
        """
        super().__init__(clock)
        self.redis = redis_client
        self.key_prefix = key_prefix
        self.retention_seconds = retention_seconds
        self._put_script = redis_client.register_script(PUT_SCRIPT)
        self._consume_script = redis_client.register_script(CONSUME_SCRIPT)
        self._delete_if_script = redis_client.register_script(DELETE_IF_SCRIPT)

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisChallengeStore":
        """Create a store with its own client, e.g. ``redis://localhost:6379/0``."""
        return cls(Redis.from_url(url), **kwargs)

    @classmethod
    def from_config(
        cls, redis_client, config: OtpGateConfig, clock: Clock = utc_now
    ) -> "RedisChallengeStore":
        return cls(
            redis_client,
            key_prefix=config.redis_key_prefix,
            retention_seconds=config.expired_retention_seconds,
            clock=clock,
        )

    def get_key(self, user_id: str) -> str:
        """Generate the challenge key for a user."""
        return f"{self.key_prefix}:challenge:{user_id}"

    async def put(self, user_id: str, code: str, ttl: int) -> OtpChallenge:
        challenge = self._new_challenge(user_id, code, ttl)

        try:
            await self._put_script(
                keys=[self.get_key(user_id)],
                args=[
                    challenge.challenge_id,
                    user_id,
                    challenge.code_hash,
                    challenge.salt,
                    _to_epoch(challenge.created_at),
                    _to_epoch(challenge.expires_at),
                    int(ttl) + self.retention_seconds,
                ],
            )
        except RedisError as e:
            logger.error("Challenge store write failed", user_id=user_id, error=str(e))
            raise

        return challenge

    async def get(self, user_id: str) -> Optional[OtpChallenge]:
        data = await self.redis.hgetall(self.get_key(user_id))
        if not data:
            return None
        return self._from_hash({_decode(k): v for k, v in data.items()})

    async def consume(
        self, user_id: str, challenge_id: Optional[str] = None
    ) -> OtpChallenge:
        try:
            result = await self._consume_script(
                keys=[self.get_key(user_id)],
                args=[_to_epoch(self.clock()), challenge_id or ""],
            )
        except RedisError as e:
            logger.error("Challenge consume failed", user_id=user_id, error=str(e))
            raise

        if not result:
            raise NotFound()

        # HGETALL reply from Lua is a flat [field, value, ...] list
        pairs = iter(result)
        return self._from_hash({_decode(k): v for k, v in zip(pairs, pairs)})

    async def delete(self, user_id: str, challenge_id: Optional[str] = None) -> None:
        if challenge_id is None:
            await self.redis.delete(self.get_key(user_id))
            return
        await self._delete_if_script(keys=[self.get_key(user_id)], args=[challenge_id])

    def _from_hash(self, data: Dict[str, object]) -> OtpChallenge:
        return OtpChallenge(
            challenge_id=_decode(data["challenge_id"]),
            user_id=_decode(data["user_id"]),
            code_hash=_decode(data["code_hash"]),
            salt=_decode(data["salt"]),
            created_at=_from_epoch(data["created_at"]),
            expires_at=_from_epoch(data["expires_at"]),
            consumed=_decode(data["consumed"]) == "1",
        )
