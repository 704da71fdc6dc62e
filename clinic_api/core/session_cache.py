"""
Session cache: a key-value store with expiry holding one session snapshot
per user.

The cache is constructed once at startup and handed to the services and
dependencies that need it; tests swap in the in-memory backend.
"""
import json
import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

import redis.asyncio as aioredis
from redis.exceptions import RedisError

# Set up logging
logger = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "session:"


class SessionCache:
    """Interface of the cache backends."""

    async def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def ttl(self, key: str) -> Optional[int]:
        """Remaining lifetime in seconds, or None when the key is absent."""
        raise NotImplementedError

    async def ping(self) -> bool:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class RedisSessionCache(SessionCache):
    """Thin Redis wrapper for session snapshots."""

    def __init__(self, redis_url: str, *, socket_timeout: float = 5.0):
        self.redis_url = redis_url
        self.client = aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )

    async def get(self, key: str) -> Optional[str]:
        return await self.client.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self.client.set(key, value, ex=max(1, int(ttl_seconds)))

    async def delete(self, key: str) -> None:
        await self.client.delete(key)

    async def ttl(self, key: str) -> Optional[int]:
        remaining = await self.client.ttl(key)
        # -2: key does not exist, -1: key has no expiry
        if remaining == -2:
            return None
        return remaining

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            logger.error(f"Redis health check failed: {str(e)}")
            return False

    async def close(self) -> None:
        try:
            await self.client.aclose()
            logger.info("Redis connection closed gracefully")
        except RedisError as e:
            logger.error(f"Error closing Redis connection: {str(e)}")


class MemorySessionCache(SessionCache):
    """
    Process-local cache with the same semantics as Redis SET EX / GET / DEL.

    Entries are evicted lazily when read after their deadline.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}

    def _live(self, key: str) -> Optional[Tuple[str, float]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry[1] <= self._clock():
            del self._entries[key]
            return None
        return entry

    async def get(self, key: str) -> Optional[str]:
        entry = self._live(key)
        return entry[0] if entry else None

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._entries[key] = (value, self._clock() + max(1, int(ttl_seconds)))

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def ttl(self, key: str) -> Optional[int]:
        entry = self._live(key)
        if entry is None:
            return None
        return int(round(entry[1] - self._clock()))

    async def ping(self) -> bool:
        return True

    def __len__(self) -> int:
        return len([key for key in list(self._entries) if self._live(key)])


class SessionStore:
    """
    Serializes session snapshots in and out of a SessionCache.

    One entry per user id; every write replaces the previous snapshot and
    restarts its time-to-live.
    """

    def __init__(self, cache: SessionCache, ttl_seconds: int):
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def key_for(user_id: str) -> str:
        return f"{SESSION_KEY_PREFIX}{user_id}"

    async def write(self, user_id: str, snapshot: Dict[str, Any]) -> None:
        await self.cache.set(self.key_for(user_id), json.dumps(snapshot, default=str), self.ttl_seconds)

    async def read(self, user_id: str) -> Optional[Dict[str, Any]]:
        raw = await self.cache.get(self.key_for(user_id))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding unreadable session snapshot for user {user_id}")
            await self.cache.delete(self.key_for(user_id))
            return None

    async def revoke(self, user_id: str) -> None:
        await self.cache.delete(self.key_for(user_id))

    async def remaining_ttl(self, user_id: str) -> Optional[int]:
        return await self.cache.ttl(self.key_for(user_id))


def create_session_cache(settings) -> SessionCache:
    """Build the cache backend configured for this process."""
    if settings.redis_url:
        logger.info("Using Redis session cache")
        return RedisSessionCache(settings.redis_url, socket_timeout=settings.redis_socket_timeout)
    if settings.is_production:
        logger.warning("REDIS_URL is not set; sessions are kept in process memory")
    else:
        logger.info("REDIS_URL is not set; using in-memory session cache")
    return MemorySessionCache()
