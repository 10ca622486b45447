"""
Redis cache manager.

Caches department suggestions by complaint text so identical drafts do not
hit the AI service twice.
"""

import hashlib
import json
from typing import Optional, Dict, Any
import redis.asyncio as redis
from api.utils.logger import get_logger

logger = get_logger(__name__)


class CacheManager:
    """
    Redis-based JSON cache.

    Cache failures are logged and treated as a miss; the cache is never
    allowed to fail a request.
    """

    def __init__(self, url: str):
        """
        Args:
            url: Redis connection URL (e.g. redis://localhost:6379)
        """
        self.redis = redis.from_url(
            url,
            decode_responses=True,
            max_connections=50,
            socket_keepalive=True,
            socket_timeout=5.0,
            retry_on_timeout=True,
        )
        logger.info(f"Initialized CacheManager: {url}")

    @staticmethod
    def suggestion_key(complaint_text: str) -> str:
        """
        Key for a department suggestion: 'suggest:{md5}'.

        Whitespace and case do not change the routing answer, so they are
        normalised away before hashing.
        """
        normalised = " ".join(complaint_text.lower().split())
        return f"suggest:{hashlib.md5(normalised.encode()).hexdigest()}"

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            value = await self.redis.get(key)
            if value:
                logger.debug(f"Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"Cache MISS: {key}")
            return None
        except Exception as e:
            logger.error(f"Cache get failed: {e}")
            return None

    async def set(self, key: str, value: Dict[str, Any], ttl: int = 3600) -> None:
        """Cache `value` for `ttl` seconds."""
        try:
            await self.redis.setex(key, ttl, json.dumps(value))
            logger.debug(f"Cached: {key}, ttl={ttl}s")
        except Exception as e:
            logger.error(f"Cache set failed: {e}")

    async def ping(self) -> bool:
        """Readiness probe."""
        try:
            return bool(await self.redis.ping())
        except Exception as e:
            logger.error(f"Cache ping failed: {e}")
            return False

    async def close(self) -> None:
        """Close Redis connection."""
        await self.redis.aclose()
