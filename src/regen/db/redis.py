"""
Redis Module

Redis-backed key-value store for settings and user-created voices.
"""

import redis.asyncio as redis
import structlog

from regen.core.errors import StorageError

from .store import KeyValueStore

logger = structlog.get_logger()


class RedisKeyValueStore(KeyValueStore):
    """Key-value store on top of a redis.asyncio client."""

    name = "redis"

    def __init__(self, url: str | None = None, client: redis.Redis | None = None) -> None:
        if client is None and url is None:
            raise ValueError("Either url or client is required")
        self.url = url
        self._client = client

    async def _get_client(self) -> redis.Redis:
        """Get or create the Redis client."""
        if self._client is None:
            self._client = redis.from_url(
                str(self.url),
                encoding="utf-8",
                decode_responses=True,
            )

            # Test connection
            try:
                await self._client.ping()
            except redis.RedisError as e:
                client, self._client = self._client, None
                await client.aclose()
                raise StorageError(f"Redis not reachable: {e}") from e
            logger.info("Redis connection initialized")
        return self._client

    async def get(self, key: str) -> str | None:
        client = await self._get_client()
        try:
            return await client.get(key)
        except redis.RedisError as e:
            raise StorageError(f"Redis GET {key} failed: {e}") from e

    async def set(self, key: str, value: str) -> None:
        client = await self._get_client()
        try:
            await client.set(key, value)
        except redis.RedisError as e:
            raise StorageError(f"Redis SET {key} failed: {e}") from e

    async def delete(self, key: str) -> None:
        client = await self._get_client()
        try:
            await client.delete(key)
        except redis.RedisError as e:
            raise StorageError(f"Redis DEL {key} failed: {e}") from e

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Redis connection closed")
