"""Rate limiting utilities using Redis."""

import redis.asyncio as redis
import secrets
import time


class RateLimiter:
    """Sliding-window limiter: one Redis sorted set of hit timestamps per key."""

    def __init__(self, redis_client: redis.Redis, prefix: str = "rate_limit"):
        self.redis_client = redis_client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def _hits_in_window(self, full_key: str, window: int) -> int:
        await self.redis_client.zremrangebyscore(full_key, 0, time.time() - window)
        return await self.redis_client.zcard(full_key)

    async def check_rate_limit(self, key: str, limit: int = 100, window: int = 60) -> bool:
        """Record a hit unless the key is already at its limit."""
        full_key = self._key(key)
        if await self._hits_in_window(full_key, window) >= limit:
            return False

        now = time.time()
        # Members must be unique or hits in the same instant collapse
        await self.redis_client.zadd(full_key, {f"{now}:{secrets.token_hex(4)}": now})
        await self.redis_client.expire(full_key, window)
        return True

    async def get_remaining_requests(self, key: str, limit: int = 100, window: int = 60) -> int:
        hits = await self._hits_in_window(self._key(key), window)
        return max(0, limit - hits)

    async def reset_rate_limit(self, key: str) -> None:
        await self.redis_client.delete(self._key(key))
