"""
Redis cache for validated style profiles.

Key pattern:
- style_profile:{user_id} - StyleJson as JSON (TTL from settings)

The cache is optional: when Redis is not connected or errors, reads are
misses and writes are skipped.
"""

import json
from typing import Optional

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

from ghostwriter.schemas.style import StyleJson, load_stored_style

logger = structlog.get_logger(__name__)


class StyleProfileCache:
    """Read-through cache in front of the style_profiles table."""

    def __init__(self, redis_url: str, ttl_seconds: int):
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self._client: Optional[redis.Redis] = None

    async def connect(self) -> None:
        """Establish Redis connection."""
        if self._client is None:
            client = redis.from_url(self.redis_url, encoding="utf-8", decode_responses=True)
            await client.ping()
            self._client = client

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def connected(self) -> bool:
        return self._client is not None

    @staticmethod
    def _key(user_id: str) -> str:
        return f"style_profile:{user_id}"

    async def get_style_profile(self, user_id: str) -> Optional[StyleJson]:
        if self._client is None:
            return None
        try:
            data = await self._client.get(self._key(user_id))
        except RedisError as e:
            logger.warning("Style cache read failed", user_id=user_id, error=str(e))
            return None
        return load_stored_style(data) if data else None

    async def set_style_profile(self, user_id: str, style: StyleJson) -> None:
        if self._client is None:
            return
        try:
            await self._client.setex(self._key(user_id), self.ttl_seconds, json.dumps(style.model_dump()))
        except RedisError as e:
            logger.warning("Style cache write failed", user_id=user_id, error=str(e))

    async def invalidate_style_profile(self, user_id: str) -> None:
        if self._client is None:
            return
        try:
            await self._client.delete(self._key(user_id))
        except RedisError as e:
            logger.warning("Style cache invalidation failed", user_id=user_id, error=str(e))
