"""
In-memory store for single-process deployments and tests.
"""

import asyncio
import time
from typing import Callable, Dict, Optional, Sequence, Tuple

from loguru import logger

from .base import BaseStore, WindowSpec


class MemoryStore(BaseStore):
    """
    Dict-backed store with per-key expiry.

    A single asyncio.Lock serializes all access. ``clock`` returns seconds
    and can be swapped for a fake in tests.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = asyncio.Lock()
        logger.info("MemoryStore initialized")

    def _live(self, key: str, now: float) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and now >= expires_at:
            del self._data[key]
            return None
        return value

    def _expiry(self, ttl: Optional[int], now: float) -> Optional[float]:
        return now + ttl if ttl else None

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            return self._live(key, self._clock())

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        async with self._lock:
            now = self._clock()
            self._data[key] = (value, self._expiry(ttl, now))

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._data.pop(key, None) is not None

    async def delete_prefix(self, prefix: str) -> int:
        async with self._lock:
            keys = [key for key in self._data if key.startswith(prefix)]
            for key in keys:
                del self._data[key]
            return len(keys)

    async def increment_windows(self, windows: Sequence[WindowSpec]) -> Optional[int]:
        async with self._lock:
            now = self._clock()
            for index, (key, limit, ttl) in enumerate(windows):
                current = self._live(key, now)
                if current is None:
                    self._data[key] = ("1", self._expiry(ttl, now))
                    continue

                count = int(current)
                if count >= limit:
                    return index

                # Increment keeps the original window expiry
                self._data[key] = (str(count + 1), self._data[key][1])
            return None

    async def ping(self) -> bool:
        return True

    def __len__(self) -> int:
        return len(self._data)
