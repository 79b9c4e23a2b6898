# =============================================================================
# File: tenantsync/infra/persistence/redis_client.py
# =============================================================================
# Async Redis client for the projection cache
# • One instance per application, stored on app.state
# • Every command runs through a circuit breaker and the Redis retry policy
# • Failures surface as CacheError so callers decide how to degrade
# =============================================================================

from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import redis.asyncio as redis
from redis.exceptions import RedisError

from tenantsync.common.exceptions.exceptions import CacheError
from tenantsync.config.redis_config import RedisConfig, get_redis_config
from tenantsync.config.reliability_config import ReliabilityConfigs
from tenantsync.infra.reliability.circuit_breaker import CircuitBreaker, CircuitBreakerOpenError
from tenantsync.infra.reliability.retry import retry_async

log = logging.getLogger("tenantsync.redis_client")

T = TypeVar("T")


def _build_redis_client_from_config(config: RedisConfig) -> redis.Redis:
    return redis.from_url(config.redis_url, **config.get_connection_kwargs())


def _is_retryable(error: Exception) -> bool:
    return not isinstance(error, CircuitBreakerOpenError)


class RedisClient:
    """Thin wrapper over redis.asyncio exposing the commands the cache needs."""

    def __init__(self, config: Optional[RedisConfig] = None, client: Optional[redis.Redis] = None):
        self.config = config or get_redis_config()
        self._client = client
        self.circuit_breaker = CircuitBreaker(ReliabilityConfigs.cache_circuit_breaker(self.config))
        self.retry_config = ReliabilityConfigs.cache_retry(self.config, retry_condition=_is_retryable)

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            raise RuntimeError("Redis client not initialized. Call init() first.")
        return self._client

    async def init(self) -> redis.Redis:
        """Build the client if needed and verify it with PING. Idempotent."""
        if self._client is None:
            self._client = _build_redis_client_from_config(self.config)

        try:
            await retry_async(self._client.ping, retry_config=self.retry_config, context="Redis init ping")
        except Exception as e:
            log.error(f"Failed to initialize Redis client: {e}")
            raise

        log.info(f"Redis client initialized and ping OK ({self.config.redis_url.split('@')[-1]}).")
        return self._client

    async def close(self) -> None:
        if self._client is None:
            return
        client, self._client = self._client, None
        try:
            await client.aclose()
        except (RedisError, OSError) as e:
            log.warning(f"Error while closing Redis client: {e}")

    async def _run(self, name: str, key: str, func: Callable[..., Awaitable[T]], *args: Any) -> T:
        start_time = time.monotonic()
        try:
            if self.config.circuit_breaker_enabled:
                result = await retry_async(
                    self.circuit_breaker.call, func, *args,
                    retry_config=self.retry_config,
                    context=f"Redis {name}"
                )
            else:
                result = await retry_async(func, *args, retry_config=self.retry_config, context=f"Redis {name}")
        except Exception as e:
            log.warning(f"Redis {name} failed for '{key}': {e}")
            raise CacheError(f"Redis {name} failed: {e}") from e

        elapsed_ms = (time.monotonic() - start_time) * 1000
        if elapsed_ms > self.config.slow_command_threshold_ms:
            log.warning(f"[SLOW REDIS] {name} took {elapsed_ms:.1f}ms: {key[:100]}")
        return result

    async def get(self, key: str) -> Optional[str]:
        return await self._run("GET", key, self.client.get, key)

    async def setex(self, key: str, ttl_seconds: int, value: str) -> bool:
        await self._run("SETEX", key, self.client.setex, key, ttl_seconds, value)
        return True

    async def delete(self, key: str) -> int:
        return await self._run("DELETE", key, self.client.delete, key)

    async def ping(self) -> bool:
        try:
            return bool(await self._run("PING", "-", self.client.ping))
        except CacheError:
            return False

    async def health_check(self) -> Dict[str, Any]:
        """Ping Redis and report breaker state plus basic server info."""
        if self._client is None:
            return {"is_healthy": False, "error": "Redis client not initialized"}

        ping_result = await self.ping()
        details: Dict[str, Any] = {
            "ping_successful": ping_result,
            "is_healthy": ping_result,
            "circuit_breaker": self.circuit_breaker.get_metrics(),
        }

        if ping_result:
            try:
                info = await self._client.info()
                details["redis_version"] = info.get("redis_version")
                details["connected_clients"] = info.get("connected_clients")
                details["used_memory_human"] = info.get("used_memory_human")
            except (RedisError, OSError) as e:
                details["info_error"] = str(e)

        return details
