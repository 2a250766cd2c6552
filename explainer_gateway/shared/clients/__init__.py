"""
Client modules for external services.
"""

from .base import BaseStore
from .memory import MemoryStore
from .redis import RedisClient

__all__ = ["BaseStore", "MemoryStore", "RedisClient"]
