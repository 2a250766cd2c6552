"""
Connection management.
"""
from typing import Any, Dict, Optional

import httpx
import redis.asyncio as redis
from loguru import logger

from .config import Settings
from ..clients import BaseStore, MemoryStore, RedisClient


class ConnectionManager:
    """
    Centralized connection management without global state.
    This is initialized once in app lifespan and passed via app.state.

    Owns:
    - the shared state store (Redis pool or in-memory store)
    - the outbound HTTP client used for provider calls
    """

    def __init__(
        self,
        settings: Settings,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
        store: Optional[BaseStore] = None
    ) -> None:
        """
        Args:
            settings: Application settings
            http_transport: Optional transport override for the HTTP client (tests)
            store: Optional pre-built store (tests)
        """
        self.settings = settings
        self._http_transport = http_transport
        self._pools: Dict[str, Any] = {}
        self._store: Optional[BaseStore] = store
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize all connection pools at startup."""
        if self._initialized:
            logger.warning("ConnectionManager already initialized, skipping")
            return

        logger.info("Initializing connection pools...")

        if self._store is None:
            if self.settings.uses_memory_store():
                self._store = MemoryStore()
                logger.info("Using in-memory state store")
            else:
                self._pools['redis'] = redis.ConnectionPool.from_url(
                    self.settings.redis_url,
                    max_connections=self.settings.redis_max_connections,
                    decode_responses=True,
                    socket_keepalive=self.settings.redis_socket_keepalive,
                    retry_on_timeout=True,
                    health_check_interval=self.settings.redis_health_check_interval,
                )

                try:
                    test_redis = redis.Redis(connection_pool=self._pools['redis'])
                    await test_redis.ping()
                    logger.info("Redis connection pool initialized and tested successfully")
                except Exception as e:
                    logger.error(f"Failed to connect to Redis: {e}")
                    raise

                self._store = RedisClient(redis.Redis(connection_pool=self._pools['redis']))

        # HTTP client pool for provider APIs; per-request timeouts are set by the provider
        self._pools['http'] = httpx.AsyncClient(
            timeout=httpx.Timeout(self.settings.provider_timeout),
            limits=httpx.Limits(
                max_connections=self.settings.http_max_connections,
                max_keepalive_connections=self.settings.http_keepalive_connections
            ),
            http2=self.settings.enable_http2 and self._http_transport is None,
            transport=self._http_transport,
            follow_redirects=False,
        )

        self._initialized = True
        logger.info("Connection pools initialized successfully")

    def get_store(self) -> BaseStore:
        """Get the shared state store."""
        if not self._initialized:
            raise RuntimeError("ConnectionManager not initialized. Call initialize() first.")
        return self._store

    def get_http_client(self) -> httpx.AsyncClient:
        """Get shared HTTP client."""
        if not self._initialized:
            raise RuntimeError("ConnectionManager not initialized. Call initialize() first.")
        return self._pools['http']

    async def close(self) -> None:
        """Cleanup all connections gracefully."""
        logger.info("Closing connection pools...")

        if 'http' in self._pools:
            try:
                await self._pools['http'].aclose()
                logger.info("HTTP client closed")
            except Exception as e:
                logger.error(f"Error closing HTTP client: {e}")

        if 'redis' in self._pools:
            try:
                await self._pools['redis'].disconnect()
                logger.info("Redis connection pool closed")
            except Exception as e:
                logger.error(f"Error closing Redis pool: {e}")

        self._pools.clear()
        self._initialized = False
        logger.info("All connection pools closed")

    def is_initialized(self) -> bool:
        """Check if connection manager is initialized."""
        return self._initialized

    async def health_check(self) -> Dict[str, bool]:
        """
        Perform health checks on all connections.
        Returns a dict with the health status of each connection type.
        """
        health_status = {}

        try:
            health_status['store'] = await self.get_store().ping()
        except Exception as e:
            logger.error(f"Store health check failed: {e}")
            health_status['store'] = False

        health_status['http'] = 'http' in self._pools

        return health_status
