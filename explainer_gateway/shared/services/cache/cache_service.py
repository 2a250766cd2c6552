"""
Explanation cache keyed by normalized selection text.
"""
import hashlib
import json
from typing import Optional

from loguru import logger
from pydantic import ValidationError

from ...clients.base import BaseStore
from ...middleware.monitoring import record_cache_lookup
from ...models.internal import CacheEntry


CACHE_NAMESPACE = "explainer:cache"


class ExplanationCache:
    """
    Content-addressed cache of explanations.

    Features:
    - SHA-256 keys over the normalized text
    - TTL held by the store
    - Store failures degrade to a miss, never to an error
    - A disabled cache never hits and never writes
    """

    def __init__(self, store: BaseStore, default_ttl: int = 24 * 3600, enabled: bool = True):
        """
        Initialize cache service.

        Args:
            store: Shared key-value store
            default_ttl: Default TTL in seconds (24 hours)
            enabled: When False every lookup is a miss and puts are dropped
        """
        self.store = store
        self.default_ttl = default_ttl
        self.enabled = enabled
        self._stats = {
            "hits": 0,
            "misses": 0,
            "errors": 0
        }

    @classmethod
    def from_settings(cls, store: BaseStore, settings) -> "ExplanationCache":
        return cls(store, default_ttl=settings.cache_ttl_seconds, enabled=settings.cache_enabled)

    def make_cache_key(self, normalized_text: str) -> str:
        """
        Deterministic key for a normalized selection.

        Example:
            key = cache.make_cache_key("quantum entanglement")
            # Returns: "explainer:cache:5f1c0a..."
        """
        digest = hashlib.sha256(normalized_text.encode("utf-8")).hexdigest()
        return f"{CACHE_NAMESPACE}:{digest}"

    async def get(self, normalized_text: str) -> Optional[CacheEntry]:
        """
        Get a cached explanation.

        Returns:
            CacheEntry or None on miss, expiry, disabled cache or store error
        """
        if not self.enabled:
            return None

        key = self.make_cache_key(normalized_text)
        try:
            cached = await self.store.get(key)
        except Exception as e:
            self._stats["errors"] += 1
            logger.warning(f"Cache get error for {key}: {e}")
            return None

        if not cached:
            self._stats["misses"] += 1
            record_cache_lookup(hit=False)
            return None

        try:
            entry = CacheEntry.model_validate(json.loads(cached))
        except (ValueError, ValidationError) as e:
            self._stats["errors"] += 1
            logger.warning(f"Discarding unreadable cache entry {key}: {e}")
            return None

        self._stats["hits"] += 1
        record_cache_lookup(hit=True)
        logger.debug(f"Cache hit: {key}")
        return entry

    async def put(
        self,
        normalized_text: str,
        explanation: str,
        provider: str,
        model: Optional[str] = None,
        ttl_hours: Optional[int] = None
    ) -> bool:
        """
        Store an explanation.

        Returns:
            True if stored, False when disabled or on store error
        """
        if not self.enabled:
            return False

        key = self.make_cache_key(normalized_text)
        entry = CacheEntry(key=key, explanation=explanation, provider=provider, model=model)
        ttl_seconds = ttl_hours * 3600 if ttl_hours else self.default_ttl

        try:
            await self.store.set(key, entry.model_dump_json(), ttl=ttl_seconds)
            logger.debug(f"Cached {key} for {ttl_seconds}s")
            return True
        except Exception as e:
            self._stats["errors"] += 1
            logger.warning(f"Cache set error for {key}: {e}")
            return False

    async def clear(self) -> int:
        """Delete every cached explanation. Returns the number removed."""
        deleted = await self.store.delete_prefix(f"{CACHE_NAMESPACE}:")
        logger.info(f"Cleared {deleted} cached explanations")
        return deleted

    def get_stats(self) -> dict:
        """Get cache statistics."""
        total = self._stats["hits"] + self._stats["misses"]
        hit_rate = self._stats["hits"] / total if total > 0 else 0

        return {
            "enabled": self.enabled,
            "hits": self._stats["hits"],
            "misses": self._stats["misses"],
            "errors": self._stats["errors"],
            "total_requests": total,
            "hit_rate": round(hit_rate, 4)
        }
