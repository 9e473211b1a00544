"""
Redis Connection Module

This module provides async Redis connection management for the
shared job store.

Redis is an in-memory data store that we use as the durable queue
for processing jobs. When a user requests a PDF split or OCR, we:
1. Record the job in Redis (instant)
2. Return the job id to the user (total: ~10ms)

Worker processes pull jobs from the same Redis keys and process them.
"""

import logging
from typing import Optional

from redis.asyncio import Redis, ConnectionPool

from docvault.core.config import settings

# ============================================================
# Logging Setup
# ============================================================
logger = logging.getLogger(__name__)

# ============================================================
# Redis Connection Pool
# ============================================================

# Global connection pool - initialized once, reused everywhere
_redis_pool: Optional[ConnectionPool] = None


def get_redis_pool() -> ConnectionPool:
    """
    Get or create the Redis connection pool.

    Uses singleton pattern - creates pool once, reuses thereafter.
    """
    global _redis_pool

    if _redis_pool is None:
        _redis_pool = ConnectionPool.from_url(
            settings.REDIS_URL,
            max_connections=20,      # Workers + API requests
            decode_responses=True,   # Job store keeps text only
        )
        logger.info(f"Redis connection pool created: {settings.REDIS_URL}")

    return _redis_pool


def get_redis() -> Redis:
    """Return a Redis client bound to the shared pool."""
    pool = get_redis_pool()
    return Redis(connection_pool=pool)


async def close_redis_pool():
    """
    Close Redis connection pool during shutdown.

    Called from the FastAPI lifespan and the worker shutdown hook.
    """
    global _redis_pool

    if _redis_pool is not None:
        await _redis_pool.disconnect()
        _redis_pool = None
        logger.info("Redis connection pool closed")


# ============================================================
# Health Check
# ============================================================

async def check_redis_connection() -> bool:
    """
    Check if Redis is reachable.

    Returns:
        True if Redis responds to PING, False otherwise
    """
    try:
        redis = get_redis()
        # PING command - Redis should respond with PONG
        response = await redis.ping()
        logger.info("Redis health check: OK")
        return bool(response)
    except Exception as e:
        logger.error(f"Redis health check failed: {e}")
        return False
