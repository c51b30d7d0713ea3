"""Redis connection management with bounded reconnection.

This module provides:
- A single async Redis connection pool per manager instance
- Explicit connect/disconnect lifecycle (called from the container)
- Background reconnection with capped exponential backoff after a failure
- A degraded mode, entered once the reconnect ceiling is hit, in which no
  client is handed out until ``connect()`` succeeds again
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError

from price_discovery.core.exceptions import CacheUnavailableError
from price_discovery.observability.logging import get_logger


if TYPE_CHECKING:
    from collections.abc import Callable

    from redis.asyncio import Redis

    from price_discovery.core.config import Settings


logger = get_logger(__name__)


class RedisConnectionManager:
    """Owns the Redis client used by the market data cache.

    Callers ask for ``require_client()`` before every operation. A
    ``CacheUnavailableError`` means the operation should degrade to a
    miss/no-op.
    When an operation fails on the wire, the caller reports it through
    ``report_failure`` and the manager reconnects in the background.
    """

    def __init__(
        self,
        url: str,
        *,
        max_reconnect_attempts: int = 5,
        reconnect_base_delay: float = 0.1,
        reconnect_max_delay: float = 3.0,
        connect_timeout: float = 5.0,
        client_factory: Callable[[], Redis[Any]] | None = None,
    ) -> None:
        """Initialize the connection manager.

        Args:
            url: Redis connection URL.
            max_reconnect_attempts: Attempts before entering degraded mode.
            reconnect_base_delay: Delay before the first reconnect attempt.
            reconnect_max_delay: Upper bound for any single backoff delay.
            connect_timeout: Socket connect timeout in seconds.
            client_factory: Override for building clients (used by tests).
        """
        self.url = url
        self.max_reconnect_attempts = max_reconnect_attempts
        self.reconnect_base_delay = reconnect_base_delay
        self.reconnect_max_delay = reconnect_max_delay
        self.connect_timeout = connect_timeout
        self._client_factory = client_factory or self._build_client
        self._client: Redis[Any] | None = None
        self._pool: ConnectionPool[Any] | None = None
        self._connected = False
        self._degraded = False
        self._reconnect_task: asyncio.Task[None] | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> RedisConnectionManager:
        """Build a manager from the ``redis`` settings section."""
        return cls(
            settings.redis_cache_url,
            max_reconnect_attempts=settings.redis.max_reconnect_attempts,
            reconnect_base_delay=settings.redis.reconnect_base_delay,
            reconnect_max_delay=settings.redis.reconnect_max_delay,
            connect_timeout=settings.redis.connect_timeout,
        )

    @property
    def connected(self) -> bool:
        """Whether a verified client is currently available."""
        return self._connected

    @property
    def degraded(self) -> bool:
        """Whether reconnection gave up and the cache is disabled."""
        return self._degraded

    @property
    def client(self) -> Redis[Any] | None:
        """The live client, or None while disconnected."""
        return self._client if self._connected else None

    def require_client(self) -> Redis[Any]:
        """The live client.

        Raises:
            CacheUnavailableError: If Redis is disconnected or degraded.
        """
        client = self.client
        if client is None:
            reason = "degraded" if self._degraded else "not connected"
            msg = f"Redis is {reason}"
            raise CacheUnavailableError(msg)
        return client

    def reconnect_delay(self, attempt: int) -> float:
        """Backoff before reconnect ``attempt`` (1-based), doubling up to the cap."""
        delay = self.reconnect_base_delay * (2 ** (attempt - 1))
        return min(delay, self.reconnect_max_delay)

    def _build_client(self) -> Redis[Any]:
        if self._pool is None:
            self._pool = ConnectionPool.from_url(
                self.url,
                max_connections=20,
                decode_responses=True,
                socket_connect_timeout=self.connect_timeout,
            )
        return redis.Redis(connection_pool=self._pool)

    async def _try_connect(self) -> bool:
        client = self._client_factory()
        try:
            await client.ping()
        except (RedisError, OSError) as e:
            logger.warning("Redis ping failed", error=str(e))
            await self._close_client(client)
            return False

        previous = self._client
        self._client = client
        self._connected = True
        self._degraded = False
        if previous is not None and previous is not client:
            await self._close_client(previous)
        return True

    async def connect(self) -> bool:
        """Connect to Redis, retrying with backoff up to the attempt ceiling.

        A successful call always clears degraded mode.

        Returns:
            True if a connection was established.
        """
        if self._connected:
            return True

        for attempt in range(1, self.max_reconnect_attempts + 1):
            if await self._try_connect():
                logger.info("Redis cache connected", attempt=attempt)
                return True
            if attempt < self.max_reconnect_attempts:
                await asyncio.sleep(self.reconnect_delay(attempt))

        self._enter_degraded_mode()
        return False

    def report_failure(self, error: BaseException) -> None:
        """Mark the connection lost and start background reconnection."""
        if not self._connected:
            return
        self._connected = False
        logger.warning("Redis connection lost, reconnecting", error=str(error))
        if self._reconnect_task is None or self._reconnect_task.done():
            self._reconnect_task = asyncio.create_task(self._reconnect_loop())

    async def _reconnect_loop(self) -> None:
        for attempt in range(1, self.max_reconnect_attempts + 1):
            await asyncio.sleep(self.reconnect_delay(attempt))
            if await self._try_connect():
                logger.info("Redis cache reconnected", attempt=attempt)
                return
        self._enter_degraded_mode()

    def _enter_degraded_mode(self) -> None:
        self._connected = False
        self._degraded = True
        logger.error(
            "Max Redis reconnection attempts reached, cache disabled",
            attempts=self.max_reconnect_attempts,
        )

    @staticmethod
    async def _close_client(client: Redis[Any]) -> None:
        try:
            await client.aclose()
        except (RedisError, OSError) as e:
            logger.debug("Error closing Redis client", error=str(e))

    async def disconnect(self) -> None:
        """Close the client and pool, cancelling any pending reconnection."""
        if self._reconnect_task is not None and not self._reconnect_task.done():
            self._reconnect_task.cancel()
            try:
                await self._reconnect_task
            except asyncio.CancelledError:
                pass
        self._reconnect_task = None

        if self._client is not None:
            await self._close_client(self._client)
            self._client = None
        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None

        self._connected = False
        logger.info("Redis cache disconnected")

    async def check_health(self) -> str:
        """Ping Redis and report ``healthy``, ``unhealthy`` or ``not_connected``."""
        client = self.client
        if client is None:
            return "not_connected"
        try:
            await client.ping()
        except (RedisError, OSError) as e:
            self.report_failure(e)
            return "unhealthy"
        return "healthy"
