"""Redis client and Redis-backed progress store."""

import logging
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError

from speakquest.config import settings
from speakquest.core.exceptions import ProgressReadError, ProgressWriteError
from speakquest.services.progress_store import decode_progress, encode_progress

logger = logging.getLogger(__name__)

# Global Redis connection pool
_redis_pool: redis.ConnectionPool | None = None
_redis_client: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    """Get Redis client instance (creates connection pool on first call)."""
    global _redis_pool, _redis_client

    if _redis_client is None:
        _redis_pool = redis.ConnectionPool.from_url(
            settings.redis_url,
            decode_responses=True,
            max_connections=10,
        )
        _redis_client = redis.Redis(connection_pool=_redis_pool)
        logger.info("Redis connection pool initialized")

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection pool."""
    global _redis_pool, _redis_client

    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None

    if _redis_pool:
        await _redis_pool.aclose()
        _redis_pool = None
        logger.info("Redis connection pool closed")


class RedisProgressStore:
    """Whole progress map stored as a single JSON string under one key.

    No TTL: progress is long-lived, unlike cached values.
    """

    def __init__(self, redis_client: redis.Redis, key: str):
        self.redis = redis_client
        self.key = key

    async def load(self) -> dict[str, Any]:
        try:
            raw = await self.redis.get(self.key)  # type: ignore[misc]
        except RedisError as e:
            raise ProgressReadError(f"Redis read failed for {self.key}: {e}") from e
        if raw is None:
            return {}
        return decode_progress(raw)

    async def save(self, progress: dict[str, Any]) -> None:
        payload = encode_progress(progress)
        try:
            await self.redis.set(self.key, payload)  # type: ignore[misc]
        except RedisError as e:
            raise ProgressWriteError(f"Redis write failed for {self.key}: {e}") from e

    async def clear(self) -> None:
        try:
            await self.redis.delete(self.key)  # type: ignore[misc]
        except RedisError as e:
            raise ProgressWriteError(f"Redis delete failed for {self.key}: {e}") from e

    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())  # type: ignore[misc]
        except RedisError:
            return False
