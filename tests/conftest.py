# =============================================================================
# File: tests/conftest.py
# Description: Shared fixtures wiring the real sync components to fakes
# =============================================================================

import pytest

from tenantsync.config.cache_config import CacheConfig, reset_cache_config
from tenantsync.config.pg_client_config import reset_postgres_config
from tenantsync.config.redis_config import RedisConfig, reset_redis_config
from tenantsync.config.reliability_config import reset_reliability_settings
from tenantsync.config.webhook_config import reset_webhook_config
from tenantsync.infra.persistence.redis_client import RedisClient
from tenantsync.user_sync.cache_projector import UserCacheProjector
from tenantsync.user_sync.synchronizer import UserSynchronizer
from tenantsync.user_sync.user_store import UserStore
from tests.fakes.fake_postgres import FakePostgresClient
from tests.fakes.fake_redis import FakeRedis


@pytest.fixture
def pg() -> FakePostgresClient:
    return FakePostgresClient()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def redis_client(fake_redis) -> RedisClient:
    # One attempt and no breaker: a failing command surfaces immediately
    config = RedisConfig(retry_max_attempts=1, circuit_breaker_enabled=False)
    return RedisClient(config=config, client=fake_redis)


@pytest.fixture
def cache_config() -> CacheConfig:
    return CacheConfig(enabled=True, key_prefix="tenant", ttl_user_projection=86400)


@pytest.fixture
def cache(redis_client, cache_config) -> UserCacheProjector:
    return UserCacheProjector(redis_client, cache_config)


@pytest.fixture
def store(pg) -> UserStore:
    return UserStore(pg, conflict_retries=3)


@pytest.fixture
def synchronizer(store, cache) -> UserSynchronizer:
    return UserSynchronizer(store, cache)


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Drop cached settings so environment changes never leak between tests."""
    yield
    for reset in (
        reset_cache_config,
        reset_postgres_config,
        reset_redis_config,
        reset_reliability_settings,
        reset_webhook_config,
    ):
        reset()
