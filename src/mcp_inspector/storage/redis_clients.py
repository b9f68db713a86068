"""Redis connection management for the inspector.

One async connection pool serves the message store. A ready client can be
injected instead of a URL, which is how tests substitute an in-memory double.
"""

from typing import Optional

import redis.asyncio as redis_async

from ..exceptions import StorageNotInitializedError
from ..shared.logger import log_error, log_info


class RedisClients:
    """Owns the async Redis client used by the inspector."""

    def __init__(self, redis_url: Optional[str] = None, client: Optional[redis_async.Redis] = None,
                 max_connections: int = 50):
        """Initialize Redis clients manager.

        Args:
            redis_url: Redis connection URL
            client: Already constructed client to use instead of a pool
            max_connections: Pool size when connecting by URL
        """
        self.redis_url = redis_url or 'redis://localhost:6379/0'
        self.max_connections = max_connections
        self._async_client: Optional[redis_async.Redis] = client
        self._async_pool: Optional[redis_async.ConnectionPool] = None

    async def initialize(self):
        """Create the connection pool (unless a client was injected) and ping."""
        if self._async_client is None:
            self._async_pool = redis_async.ConnectionPool.from_url(
                self.redis_url,
                decode_responses=True,
                max_connections=self.max_connections
            )
            self._async_client = redis_async.Redis(connection_pool=self._async_pool)

        await self._async_client.ping()
        log_info("Async Redis connection initialized", component="redis", url=self.redis_url)

    @property
    def initialized(self) -> bool:
        return self._async_client is not None

    @property
    def async_redis(self) -> redis_async.Redis:
        """Get the async Redis client.

        Raises:
            StorageNotInitializedError: if ``initialize()`` has not run
        """
        if self._async_client is None:
            raise StorageNotInitializedError("Async Redis not initialized. Call initialize() first.")
        return self._async_client

    async def close(self):
        """Close the Redis connection and its pool."""
        if self._async_client is not None:
            await self._async_client.aclose()
            self._async_client = None
        if self._async_pool is not None:
            await self._async_pool.disconnect()
            self._async_pool = None
        log_info("Redis connection closed", component="redis")

    async def health_check(self) -> bool:
        """Ping Redis, returning False on any failure."""
        if self._async_client is None:
            return False
        try:
            return bool(await self._async_client.ping())
        except Exception as e:
            log_error("Redis health check failed", component="redis", error=e)
            return False
