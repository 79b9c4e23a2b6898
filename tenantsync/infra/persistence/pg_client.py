# =============================================================================
# File: tenantsync/infra/persistence/pg_client.py
# =============================================================================
# AsyncPG pool wrapper for the user store, guarded by a circuit breaker and
# retry policy from the reliability package
# =============================================================================

from __future__ import annotations

import asyncio
import json
import logging
import pathlib
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, List, Optional

import asyncpg

from tenantsync.config.pg_client_config import PostgresConfig, get_postgres_config
from tenantsync.config.reliability_config import ReliabilityConfigs
from tenantsync.infra.reliability.circuit_breaker import CircuitBreaker
from tenantsync.infra.reliability.retry import retry_async

log = logging.getLogger("tenantsync.pg_client")

DEFAULT_SCHEMA_PATH = pathlib.Path(__file__).with_name("schema.sql")

# Warn at most every 10 seconds about pool pressure
_POOL_EXHAUSTION_WARNING_INTERVAL = 10.0

# Failures worth another attempt when opening the pool or applying the schema
_CONNECTION_ERRORS = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.CannotConnectNowError,
    asyncpg.TooManyConnectionsError,
    asyncpg.ConnectionDoesNotExistError,
)


def is_connection_error(error: Exception) -> bool:
    return isinstance(error, _CONNECTION_ERRORS)


async def _init_connection(conn: asyncpg.Connection) -> None:
    """Map JSONB columns to Python dicts in both directions."""
    await conn.set_type_codec(
        'jsonb',
        encoder=json.dumps,
        decoder=json.loads,
        schema='pg_catalog'
    )


class PostgresClient:
    """Owns the asyncpg pool the user store runs on."""

    def __init__(self, config: Optional[PostgresConfig] = None, name: str = "user_store"):
        self.config = config or get_postgres_config()
        self.name = name
        self.circuit_breaker = CircuitBreaker(ReliabilityConfigs.store_circuit_breaker(name))
        self.retry_config = ReliabilityConfigs.store_connect_retry(retry_condition=is_connection_error)

        self._pool: Optional[asyncpg.Pool] = None
        self._lock = asyncio.Lock()
        self._last_exhaustion_warning = 0.0

    # -------------------------------------------------------------------------
    # Pool lifecycle
    # -------------------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        return self._pool is not None and not self._pool.is_closing()

    async def init(self, dsn: Optional[str] = None) -> asyncpg.Pool:
        """Create the pool and verify it with a test query. Idempotent."""
        async with self._lock:
            if self.is_initialized:
                return self._pool

            dsn = dsn or self.config.dsn
            if not dsn:
                raise RuntimeError("POSTGRES_DSN is not set. Please define it in your environment or .env file.")

            params = self.config.pool_params()
            params["init"] = _init_connection

            log.info(f"Initializing {self.name} PostgreSQL pool (hidden DSN): {dsn.split('@')[-1]}")

            async def create_pool() -> asyncpg.Pool:
                pool = await asyncpg.create_pool(dsn=dsn, **params)
                try:
                    async with pool.acquire() as conn:
                        await conn.fetchval("SELECT 1")
                except Exception:
                    await pool.close()
                    raise
                return pool

            try:
                self._pool = await retry_async(
                    self.circuit_breaker.call,
                    create_pool,
                    retry_config=self.retry_config,
                    context=f"{self.name} PostgreSQL pool initialization"
                )
            except Exception as e:
                log.critical(f"Failed to init {self.name} PostgreSQL pool: {e}", exc_info=True)
                self._pool = None
                raise RuntimeError(f"{self.name} PostgreSQL pool init error: {e}") from e

            log.info(
                f"{self.name} PostgreSQL pool ready. "
                f"Min/Max size: {self.config.pool_min_size}/{self.config.pool_max_size}"
            )
            return self._pool

    async def close(self) -> None:
        """Close the pool gracefully."""
        async with self._lock:
            pool, self._pool = self._pool, None
            if pool is None:
                return
            try:
                await asyncio.wait_for(pool.close(), timeout=10.0)
                log.info(f"{self.name} PostgreSQL pool closed")
            except asyncio.TimeoutError:
                log.warning(f"{self.name} PostgreSQL pool did not close in time, terminating")
                pool.terminate()

    def _require_pool(self) -> asyncpg.Pool:
        if not self.is_initialized:
            raise RuntimeError(f"{self.name} PostgreSQL pool not available")
        return self._pool

    def _check_pool_pressure(self, pool: asyncpg.Pool) -> None:
        max_size = pool.get_max_size()
        in_use = pool.get_size() - pool.get_idle_size()
        if max_size and in_use / max_size >= self.config.pool_exhaustion_threshold:
            now = time.monotonic()
            if now - self._last_exhaustion_warning >= _POOL_EXHAUSTION_WARNING_INTERVAL:
                self._last_exhaustion_warning = now
                log.warning(f"[POOL PRESSURE] {self.name} pool {in_use}/{max_size} connections in use")

    # -------------------------------------------------------------------------
    # Connections and transactions
    # -------------------------------------------------------------------------

    @asynccontextmanager
    async def acquire(self, timeout: Optional[float] = None) -> AsyncIterator[asyncpg.Connection]:
        """Acquire a pooled connection through the circuit breaker.

        Waits at most `timeout` seconds (default: config.acquire_timeout) for a
        free connection, then raises asyncio.TimeoutError.
        """
        pool = self._require_pool()
        self._check_pool_pressure(pool)
        if timeout is None:
            timeout = self.config.acquire_timeout

        async def _acquire() -> asyncpg.Connection:
            return await pool.acquire(timeout=timeout)

        conn = await self.circuit_breaker.call(_acquire)
        try:
            yield conn
        finally:
            await pool.release(conn)

    @asynccontextmanager
    async def transaction(self, timeout: Optional[float] = None) -> AsyncIterator[asyncpg.Connection]:
        """
        Yield a connection inside a transaction.

        The transaction commits when the block exits normally and rolls back
        when it raises. The connection is always returned to the pool.
        """
        async with self.acquire(timeout=timeout) as conn:
            tx_start = time.monotonic()
            async with conn.transaction():
                yield conn

            tx_duration_ms = (time.monotonic() - tx_start) * 1000
            if tx_duration_ms > self.config.long_transaction_threshold_ms:
                log.warning(
                    f"[LONG TRANSACTION] {self.name} transaction took {tx_duration_ms:.0f}ms "
                    f"(threshold: {self.config.long_transaction_threshold_ms:.0f}ms)"
                )

    # -------------------------------------------------------------------------
    # Single-statement helpers
    # -------------------------------------------------------------------------

    def _log_if_slow(self, op: str, query: str, started: float) -> None:
        elapsed_ms = (time.monotonic() - started) * 1000
        if elapsed_ms > self.config.slow_query_threshold_ms:
            log.warning(f"[SLOW QUERY] {self.name} {op} took {elapsed_ms:.1f}ms: {query[:150]}...")

    async def fetch(self, query: str, *args: Any, timeout: Optional[float] = None) -> List[asyncpg.Record]:
        async with self.acquire() as conn:
            started = time.monotonic()
            rows = await conn.fetch(query, *args, timeout=timeout)
            self._log_if_slow("FETCH", query, started)
            return rows

    async def fetchrow(self, query: str, *args: Any, timeout: Optional[float] = None) -> Optional[asyncpg.Record]:
        async with self.acquire() as conn:
            started = time.monotonic()
            row = await conn.fetchrow(query, *args, timeout=timeout)
            self._log_if_slow("FETCHROW", query, started)
            return row

    async def execute(self, query: str, *args: Any, timeout: Optional[float] = None) -> str:
        async with self.acquire() as conn:
            started = time.monotonic()
            status = await conn.execute(query, *args, timeout=timeout)
            self._log_if_slow("EXECUTE", query, started)
            return status

    # -------------------------------------------------------------------------
    # Schema and health
    # -------------------------------------------------------------------------

    async def run_schema(self, file_path: Optional[str] = None) -> None:
        """Execute DDL statements from a SQL file with retry."""
        path = pathlib.Path(file_path or self.config.schema_path or DEFAULT_SCHEMA_PATH)
        if not path.is_file():
            raise FileNotFoundError(f"Schema file not found: {path}")

        sql = path.read_text(encoding="utf-8").strip()
        if not sql:
            log.warning(f"Schema file {path} is empty")
            return

        await retry_async(
            self.execute,
            sql,
            retry_config=self.retry_config,
            context=f"{self.name} schema execution from {path.name}"
        )
        log.info(f"Schema from {path} applied to {self.name} successfully")

    async def health_check(self) -> dict:
        """Run the configured health query and report latency and pool size."""
        start_time = time.monotonic()
        health_status = {
            "database": self.name,
            "is_healthy": False,
            "latency_ms": 0,
            "details": {},
            "pool_info": {},
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

        if not self.is_initialized:
            health_status["details"] = {
                "status": "error",
                "message": f"{self.name} PostgreSQL connection pool not initialized"
            }
            return health_status

        health_status["pool_info"] = {
            "size": self._pool.get_size(),
            "idle": self._pool.get_idle_size(),
            "min_size": self.config.pool_min_size,
            "max_size": self.config.pool_max_size,
        }

        try:
            async with self.acquire(timeout=self.config.health_check_timeout) as conn:
                await conn.execute(self.config.health_check_query)
                latency_ms = int((time.monotonic() - start_time) * 1000)
                pg_version = await conn.fetchval("SHOW server_version")

            health_status.update({
                "is_healthy": True,
                "latency_ms": latency_ms,
                "details": {
                    "status": "ok",
                    "message": f"{self.name} PostgreSQL connection successful in {latency_ms}ms",
                    "pg_version": pg_version,
                }
            })
        except Exception as e:
            health_status.update({
                "latency_ms": int((time.monotonic() - start_time) * 1000),
                "details": {
                    "status": "error",
                    "message": f"{self.name} PostgreSQL connection failed: {e}",
                    "error_type": type(e).__name__
                },
                "circuit_breaker": self.circuit_breaker.get_metrics(),
            })
            log.error(f"Error during {self.name} PostgreSQL health check: {e}", exc_info=True)

        return health_status
