# homeschool/core/cache.py
"""Redis caching implementation."""
import json
import logging
from typing import Any, Optional, Union
from datetime import timedelta
import redis.asyncio as redis
from redis.exceptions import RedisError
from .config import settings

logger = logging.getLogger(__name__)

class CacheManager:
    """Thin JSON cache over Redis. Disabled when no REDIS_URL is configured."""

    def __init__(self, url: Optional[str] = None, prefix: str = "homeschool"):
        self.url = url
        self.prefix = prefix
        self.redis: Optional[redis.Redis] = None

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def make_key(self, *parts: Any) -> str:
        return ":".join([self.prefix, *(str(p) for p in parts)])

    async def initialize(self):
        """Initialize Redis connection."""
        if self.enabled and not self.redis:
            self.redis = redis.from_url(
                self.url,
                encoding="utf-8",
                decode_responses=True
            )
            logger.info("Redis cache connected")

    async def close(self):
        """Close Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        if not self.enabled:
            return None
        await self.initialize()
        try:
            value = await self.redis.get(key)
            if value is not None:
                return json.loads(value)
        except RedisError as e:
            logger.warning(f"Cache get failed for {key}: {e}")
        return None

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[Union[int, timedelta]] = None
    ) -> bool:
        """Set value in cache."""
        if not self.enabled:
            return False
        await self.initialize()
        if isinstance(ttl, timedelta):
            ttl = int(ttl.total_seconds())
        try:
            return bool(await self.redis.set(key, json.dumps(value, default=str), ex=ttl or settings.cache_ttl))
        except RedisError as e:
            logger.warning(f"Cache set failed for {key}: {e}")
            return False

    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern."""
        if not self.enabled:
            return 0
        await self.initialize()
        deleted = 0
        try:
            async for key in self.redis.scan_iter(match=pattern):
                deleted += await self.redis.delete(key)
        except RedisError as e:
            logger.warning(f"Cache invalidation failed for {pattern}: {e}")
        return deleted

# Global cache instance
cache_manager = CacheManager(settings.redis_url)
