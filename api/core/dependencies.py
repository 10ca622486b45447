"""
Dependency injection for FastAPI.

Provides singleton instances of services.
"""

from functools import lru_cache
from api.core.cache import CacheManager
from api.core.oracle import ComplaintOracle
from api.config.settings import settings


@lru_cache()
def get_cache() -> CacheManager:
    """Get cache manager singleton."""
    return CacheManager(url=settings.REDIS_URL)


@lru_cache()
def get_oracle() -> ComplaintOracle:
    """Get AI oracle singleton."""
    return ComplaintOracle(
        api_key=settings.GEMINI_API_KEY,
        model=settings.GEMINI_MODEL,
        timeout_seconds=settings.ORACLE_TIMEOUT_SECONDS,
    )
