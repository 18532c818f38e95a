"""Redis store for distributed locks.

Handles:
- Single-in-flight locks for mutating admin actions, so that a duplicate
  submission reaching another worker is rejected instead of re-issued

Redis is optional: with REDIS_URL unset the client stays uninitialized and
callers fall back to process-local coordination.

TTL policies:
- In-flight mutation locks: INFLIGHT_LOCK_TTL (default 30 seconds)
"""

import logging

import redis.asyncio as redis

from catalog_admin.settings import get_settings

# Key prefixes
PREFIX_LOCK = "catalog-admin:lock:"

# Redis client (initialized on startup)
_redis: redis.Redis | None = None
logger = logging.getLogger("uvicorn.error")


async def init_redis() -> None:
    """Initialize Redis connection (no-op when REDIS_URL is empty)."""
    global _redis
    settings = get_settings()
    if not settings.redis_url:
        logger.info("REDIS_URL not set, in-flight locks are process-local")
        return
    _redis = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )
    # Validate connectivity early (especially for `rediss://` in production).
    await _redis.ping()
    logger.info("Redis connected")


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def _get_redis() -> redis.Redis:
    """Get Redis client instance."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


async def acquire_lock(key: str, ttl: int | None = None) -> bool:
    """Acquire a distributed lock.

    Args:
        key: Lock key (e.g., "news:save:-Nabc").
        ttl: Lock timeout in seconds (defaults to INFLIGHT_LOCK_TTL).

    Returns:
        True if lock acquired, False if already locked.
    """
    lock_key = f"{PREFIX_LOCK}{key}"
    ttl = ttl or get_settings().inflight_lock_ttl
    # SET NX (only if not exists) with TTL
    result = await _get_redis().set(lock_key, "1", nx=True, ex=ttl)
    return result is not None


async def release_lock(key: str) -> None:
    """Release a distributed lock.

    Args:
        key: Lock key.
    """
    await _get_redis().delete(f"{PREFIX_LOCK}{key}")

