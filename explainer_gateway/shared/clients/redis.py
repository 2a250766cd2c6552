"""
Redis Client - shared state store for rate counters, cache entries,
circuit state and encrypted credentials.
"""

from typing import Optional, Sequence

import redis.asyncio as redis
from loguru import logger

from .base import BaseStore, WindowSpec


# KEYS: one counter per window. ARGV: limit, ttl pairs in the same order.
# Returns the 1-based index of the denying window, or 0.
INCREMENT_WINDOWS_SCRIPT = """
for i, key in ipairs(KEYS) do
    local limit = tonumber(ARGV[i * 2 - 1])
    local ttl = tonumber(ARGV[i * 2])
    local current = redis.call('GET', key)
    if not current then
        redis.call('SET', key, 1, 'EX', ttl)
    elseif tonumber(current) >= limit then
        return i
    else
        redis.call('INCR', key)
    end
end
return 0
"""


class RedisClient(BaseStore):
    """
    Redis-backed store.

    Errors are logged and re-raised; callers decide whether a store failure
    degrades (cache) or fails closed (rate limiter, breaker).
    """

    def __init__(self, redis_instance: redis.Redis):
        self.redis = redis_instance
        self._increment_windows = redis_instance.register_script(INCREMENT_WINDOWS_SCRIPT)
        logger.info("RedisClient initialized")

    @staticmethod
    def _decode(value) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def get(self, key: str) -> Optional[str]:
        """Get value by key."""
        try:
            return self._decode(await self.redis.get(key))
        except Exception as e:
            logger.error(f"Error getting key {key}: {str(e)}")
            raise

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        """Set key-value, with TTL when given."""
        try:
            if ttl:
                await self.redis.setex(key, ttl, value)
            else:
                await self.redis.set(key, value)
        except Exception as e:
            logger.error(f"Error setting key {key}: {str(e)}")
            raise

    async def delete(self, key: str) -> bool:
        """Delete key."""
        try:
            return bool(await self.redis.delete(key))
        except Exception as e:
            logger.error(f"Error deleting key {key}: {str(e)}")
            raise

    async def delete_prefix(self, prefix: str) -> int:
        """Delete all keys under a prefix using SCAN."""
        cursor = 0
        deleted_count = 0
        try:
            while True:
                cursor, keys = await self.redis.scan(cursor, match=f"{prefix}*", count=100)
                if keys:
                    deleted_count += await self.redis.delete(*keys)
                if cursor == 0:
                    break
        except Exception as e:
            logger.error(f"Error deleting keys under {prefix}: {str(e)}")
            raise

        logger.info(f"Deleted {deleted_count} keys under {prefix}")
        return deleted_count

    async def increment_windows(self, windows: Sequence[WindowSpec]) -> Optional[int]:
        keys = [key for key, _, _ in windows]
        args = []
        for _, limit, ttl in windows:
            args.extend([limit, ttl])

        try:
            result = await self._increment_windows(keys=keys, args=args)
        except Exception as e:
            logger.error(f"Error incrementing rate windows {keys}: {str(e)}")
            raise

        denied = int(result)
        return denied - 1 if denied else None

    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except Exception as e:
            logger.error(f"Redis ping failed: {str(e)}")
            return False
