"""Redis client factory: used for the checkout in-flight submission lock only.

NOT used for balances or order state (those live in PostgreSQL).
"""

import redis.asyncio as aioredis

from config.settings import settings

_redis_pool: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    """Get or create the Redis connection pool."""
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is None:
        _redis_pool = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
    return _redis_pool


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is not None:
        await _redis_pool.aclose()
        _redis_pool = None


async def acquire_lock(key: str, owner: str, ttl_seconds: int) -> bool:
    """SET NX EX: True if this caller now holds the lock."""
    redis = await get_redis()
    return bool(await redis.set(key, owner, nx=True, ex=ttl_seconds))


_RELEASE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
end
return 0
"""


async def release_lock(key: str, owner: str) -> None:
    """Delete the lock only if it is still held by owner."""
    redis = await get_redis()
    await redis.eval(_RELEASE_SCRIPT, 1, key, owner)
