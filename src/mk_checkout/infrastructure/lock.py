"""Redis in-flight lock: one place-order call per (buyer, idempotency key) at a time."""

from config.settings import settings
from src.mk_common.redis_client import acquire_lock, release_lock


class RedisSubmissionLock:
    def __init__(self, ttl_seconds: int | None = None) -> None:
        self._ttl = settings.CHECKOUT_LOCK_TTL_SECONDS if ttl_seconds is None else ttl_seconds

    async def acquire(self, key: str, owner: str) -> bool:
        return await acquire_lock(key, owner, self._ttl)

    async def release(self, key: str, owner: str) -> None:
        await release_lock(key, owner)
