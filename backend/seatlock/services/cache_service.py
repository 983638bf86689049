"""
Redis caching service for public class and event listings.

CACHING STRATEGY
================

What we cache:
  - Public listing pages (classes and events), JSON-serialized, including the
    computed currentStudents / currentAttendees figures
  - Cache key pattern: "listings:{kind}:page={page}&size={size}"

What we never cache:
  - Single-item detail and /availability reads
  - Anything the lock or booking services read; admission always counts
    straight from the database inside its transaction

Invalidation strategy:
  - Any lock acquisition, release, booking transition or item change deletes
    every "listings:*" key (SCAN + DELETE)
  - A lock that lapses changes availability without any write, so there is
    nothing to invalidate on; the short TTL (REDIS_CACHE_TTL) bounds how long
    a listing can keep showing a seat that expiry has already freed

Redis is optional: when disabled or unreachable every call degrades to a
cache miss / no-op.
"""

import json
from typing import Optional

import redis.asyncio as redis
from seatlock.core.config import get_settings
from seatlock.core.logging import get_logger
from seatlock.core.metrics import record_cache_operation, redis_connection_errors

logger = get_logger(__name__)
settings = get_settings()

LISTING_PREFIX = "listings:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            redis_connection_errors.inc()
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _make_listing_key(kind: str, page: int, page_size: int) -> str:
    return f"{LISTING_PREFIX}{kind}:page={page}&size={page_size}"


async def get_cached_listing(kind: str, page: int, page_size: int) -> Optional[dict]:
    """Retrieve a cached listing page. `kind` is "classes" or "events"."""
    client = await get_redis()
    if not client:
        return None

    key = _make_listing_key(kind, page, page_size)
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=data is not None)
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_listing(kind: str, page: int, page_size: int, data: dict) -> None:
    """Cache a listing page with TTL."""
    client = await get_redis()
    if not client:
        return

    key = _make_listing_key(kind, page, page_size)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_listing_cache() -> None:
    """
    Invalidate all cached listings.
    Uses SCAN to find and delete all keys matching the prefix.
    """
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{LISTING_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.debug("cache_invalidated", keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
