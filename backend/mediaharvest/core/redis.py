"""Resilient Redis client with graceful degradation.

Redis only backs operator-facing data here (the dead-letter list of
permanently failed jobs and readiness checks), so when it is unavailable
operations return defaults instead of raising.
"""

import asyncio
import logging
import time

import redis.asyncio as aioredis

from mediaharvest.config import settings

logger = logging.getLogger(__name__)


class ResilientRedis:
    """Wraps an async Redis client with automatic reconnection and degradation.

    - Connection/timeout errors are logged and the call returns its default
    - Reconnects with exponential backoff (1s, 2s, 4s, ..., max 30s)
    - After 5 consecutive failures, Redis is skipped for 10s
    """

    CB_THRESHOLD = 5
    CB_COOLDOWN = 10.0
    MAX_BACKOFF = 30.0

    def __init__(self, url: str | None = None):
        self._url = url or settings.REDIS_URL
        self._client: aioredis.Redis | None = None
        self._consecutive_failures = 0
        self._circuit_open_until = 0.0
        self._reconnect_delay = 1.0

    def _create_client(self) -> aioredis.Redis:
        return aioredis.from_url(
            self._url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            socket_connect_timeout=5,
            socket_timeout=5,
        )

    @property
    def client(self) -> aioredis.Redis:
        if self._client is None:
            self._client = self._create_client()
        return self._client

    def _is_circuit_open(self) -> bool:
        if self._consecutive_failures >= self.CB_THRESHOLD:
            if time.monotonic() < self._circuit_open_until:
                return True
            # Cooldown expired, allow a probe
            self._consecutive_failures = 0
        return False

    def _record_success(self):
        self._consecutive_failures = 0
        self._reconnect_delay = 1.0

    def _record_failure(self):
        self._consecutive_failures += 1
        if self._consecutive_failures >= self.CB_THRESHOLD:
            self._circuit_open_until = time.monotonic() + self.CB_COOLDOWN
            logger.warning(
                f"Redis circuit breaker OPEN — skipping for {self.CB_COOLDOWN}s"
            )

    async def _reconnect(self):
        if self._client is not None:
            try:
                await self._client.aclose()
            except (aioredis.RedisError, OSError):
                pass
        await asyncio.sleep(self._reconnect_delay)
        self._reconnect_delay = min(self._reconnect_delay * 2, self.MAX_BACKOFF)
        self._client = self._create_client()

    async def _safe_op(self, op_name, coro_func, *args, default=None, **kwargs):
        """Execute a Redis operation with degradation on failure."""
        if self._is_circuit_open():
            return default

        try:
            result = await coro_func(*args, **kwargs)
            self._record_success()
            return result
        except (
            aioredis.ConnectionError,
            aioredis.TimeoutError,
            ConnectionRefusedError,
            OSError,
        ) as e:
            self._record_failure()
            logger.warning(f"Redis {op_name} failed (degraded): {e}")
            await self._reconnect()
            return default

    async def ping(self):
        return await self._safe_op("ping", self.client.ping, default=False)

    async def lrange(self, key, start, end):
        return await self._safe_op(
            "lrange", self.client.lrange, key, start, end, default=[]
        )

    async def close(self):
        if self._client is not None:
            try:
                await self._client.aclose()
            except (aioredis.RedisError, OSError):
                pass
            self._client = None


# Module-level singleton
redis_client = ResilientRedis()
