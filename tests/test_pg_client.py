# =============================================================================
# File: tests/test_pg_client.py
# Description: Connection acquisition bounds on PostgresClient
# =============================================================================

import asyncio

import pytest

from tenantsync.common.exceptions.exceptions import StoreError
from tenantsync.config.pg_client_config import PostgresConfig
from tenantsync.infra.persistence.pg_client import PostgresClient
from tenantsync.user_sync.user_store import UserStore


class ExhaustedPool:
    """asyncpg.Pool stand-in whose connections are all checked out."""

    def __init__(self):
        self.acquire_timeouts = []

    def is_closing(self) -> bool:
        return False

    def get_max_size(self) -> int:
        return 1

    def get_size(self) -> int:
        return 1

    def get_idle_size(self) -> int:
        return 1

    async def acquire(self, *, timeout=None):
        # asyncpg raises asyncio.TimeoutError once the wait exceeds timeout
        self.acquire_timeouts.append(timeout)
        if timeout is None:
            await asyncio.Event().wait()
        await asyncio.sleep(timeout)
        raise asyncio.TimeoutError()


def _client(pool: ExhaustedPool, **config) -> PostgresClient:
    client = PostgresClient(config=PostgresConfig(**config))
    client._pool = pool
    return client


@pytest.mark.asyncio
async def test_acquire_defaults_to_configured_timeout():
    pool = ExhaustedPool()
    client = _client(pool, acquire_timeout=0.05)

    async with asyncio.timeout(2):
        with pytest.raises(asyncio.TimeoutError):
            await client.fetchrow("SELECT 1")

    assert pool.acquire_timeouts == [0.05]


@pytest.mark.asyncio
async def test_explicit_acquire_timeout_wins():
    pool = ExhaustedPool()
    client = _client(pool, acquire_timeout=5.0)

    async with asyncio.timeout(2):
        with pytest.raises(asyncio.TimeoutError):
            async with client.acquire(timeout=0.01):
                pass

    assert pool.acquire_timeouts == [0.01]


@pytest.mark.asyncio
async def test_get_by_id_on_exhausted_pool_is_store_error():
    pool = ExhaustedPool()
    store = UserStore(_client(pool, acquire_timeout=0.05))

    async with asyncio.timeout(2):
        with pytest.raises(StoreError):
            await store.get_by_id(1)

    assert pool.acquire_timeouts == [0.05]
