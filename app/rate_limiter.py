"""
Fixed-window rate limiting for the public booking endpoints.
Counts live in Redis when REDIS_URL is set, otherwise in process memory.
"""

import logging
import time
from threading import Lock
from typing import Optional

import redis
from fastapi import HTTPException, Request

from .config import PUBLIC_RATE_LIMIT, PUBLIC_RATE_WINDOW_SECONDS, RATE_LIMIT_ENABLED, REDIS_URL

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None

# Format: {key: {"count": int, "reset_time": int}}
memory_cache: dict[str, dict] = {}
cache_lock = Lock()

MEMORY_CACHE_CLEANUP_INTERVAL = 60
last_cleanup_time = 0


def get_redis_client() -> Optional[redis.Redis]:
    """Redis client for shared counters, or None when REDIS_URL is not configured"""
    global redis_client

    if redis_client is None and REDIS_URL:
        logger.info("Initializing Redis connection for rate limiting")
        redis_client = redis.from_url(
            REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )
    return redis_client


def cleanup_expired_cache(current_time: int) -> None:
    """Remove expired entries from memory cache"""
    global last_cleanup_time

    if current_time - last_cleanup_time < MEMORY_CACHE_CLEANUP_INTERVAL:
        return

    with cache_lock:
        expired_keys = [k for k, v in memory_cache.items() if current_time >= v["reset_time"]]
        for k in expired_keys:
            del memory_cache[k]

    if expired_keys:
        logger.debug(f"Cleaned up {len(expired_keys)} expired rate limit entries")
    last_cleanup_time = current_time


def check_memory_rate_limit(key: str, limit: int, window_seconds: int) -> tuple[bool, int, int]:
    """
    Count a request against an in-process window.

    Returns:
        Tuple of (is_allowed, current_count, ttl_seconds)
    """
    current_time = int(time.time())
    cleanup_expired_cache(current_time)

    with cache_lock:
        entry = memory_cache.get(key)
        if entry is None or current_time >= entry["reset_time"]:
            entry = {"count": 0, "reset_time": current_time + window_seconds}
            memory_cache[key] = entry

        is_allowed = entry["count"] < limit
        if is_allowed:
            entry["count"] += 1
        return is_allowed, entry["count"], max(0, entry["reset_time"] - current_time)


def check_redis_rate_limit(
    key: str, limit: int, window_seconds: int, client: redis.Redis
) -> tuple[bool, int, int]:
    """INCR + EXPIRE on first hit; the key expiring closes the window"""
    pipe = client.pipeline()
    pipe.incr(key)
    pipe.ttl(key)
    count, ttl = pipe.execute()
    if ttl is None or ttl < 0:
        client.expire(key, window_seconds)
        ttl = window_seconds
    return count <= limit, count, ttl


def check_rate_limit(key: str, limit: int, window_seconds: int) -> tuple[bool, int, int]:
    client = get_redis_client()
    if client is None:
        return check_memory_rate_limit(key, limit, window_seconds)

    try:
        return check_redis_rate_limit(key, limit, window_seconds, client)
    except redis.RedisError as e:
        logger.warning(f"Redis rate limit check failed, using memory counters: {e}")
        return check_memory_rate_limit(key, limit, window_seconds)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str = "rate_limit"):
    """
    Create a per-IP rate limiter dependency

    Example usage:
        router = APIRouter(dependencies=[Depends(create_rate_limiter(100, 900, "public"))])
    """

    async def rate_limiter(request: Request) -> None:
        if not RATE_LIMIT_ENABLED:
            return

        key = f"{key_prefix}:{client_ip(request)}"
        is_allowed, current_count, ttl = check_rate_limit(key, limit, window_seconds)

        if not is_allowed:
            logger.warning(f"Rate limit exceeded for {key} - {current_count}/{limit} requests used")
            raise HTTPException(
                status_code=429,
                detail="Too many requests. Please try again later.",
                headers={"Retry-After": str(ttl)},
            )

        request.state.rate_limit_remaining = max(0, limit - current_count)

    return rate_limiter


public_rate_limit = create_rate_limiter(
    PUBLIC_RATE_LIMIT, PUBLIC_RATE_WINDOW_SECONDS, key_prefix="public"
)
