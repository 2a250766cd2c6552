"""
Key-value store interface shared by the Redis and in-memory backends.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple


# (key, limit, ttl_seconds)
WindowSpec = Tuple[str, int, int]


class BaseStore(ABC):
    """
    Minimal async key-value store.

    Every method is atomic per call. ``increment_windows`` is atomic across
    all the keys it touches.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        """Store ``value``. ``ttl`` in seconds; None keeps it until deleted."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        pass

    @abstractmethod
    async def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with ``prefix``. Returns the number removed."""
        pass

    @abstractmethod
    async def increment_windows(self, windows: Sequence[WindowSpec]) -> Optional[int]:
        """
        Count one request against a series of fixed windows.

        For each window in order: a missing or expired counter is set to 1
        with a fresh TTL; a counter at or above its limit denies the request
        and later windows are left untouched; otherwise it is incremented.

        Returns:
            Index of the denying window, or None when every window allowed
        """
        pass

    @abstractmethod
    async def ping(self) -> bool:
        pass
