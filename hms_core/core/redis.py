# hms_core/core/redis.py
"""
Redis connection.
Redis is used for the cross-process per-doctor booking lock.

The app should boot even if Redis is unavailable (degraded mode: the
booking lock falls back to an in-process registry).
"""

import logging
from functools import lru_cache
from typing import Optional

import redis

from hms_core.core.config import get_settings

logger = logging.getLogger(__name__)


@lru_cache
def get_redis_client() -> Optional[redis.Redis]:
    """
    Get Redis client instance.
    Returns None if Redis is not configured or unavailable.
    """
    settings = get_settings()

    if not settings.redis_url:
        logger.warning("REDIS_URL not set. Booking lock is process-local.")
        return None

    try:
        client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        # Test connection
        client.ping()
        logger.info("Redis connection established successfully.")
        return client
    except redis.RedisError as e:
        logger.warning(
            "Failed to connect to Redis: %s. Running in degraded mode (process-local booking lock).",
            e,
        )
        return None


def is_redis_available() -> bool:
    """Check if Redis is available."""
    client = get_redis_client()
    if not client:
        return False
    try:
        client.ping()
        return True
    except redis.RedisError:
        return False
