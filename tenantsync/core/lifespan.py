# tenantsync/core/lifespan.py
# =============================================================================
# File: tenantsync/core/lifespan.py
# Description: Application lifespan management (startup/shutdown)
# =============================================================================

import asyncio
import logging
from contextlib import asynccontextmanager

from tenantsync.config.pg_client_config import get_postgres_config
from tenantsync.core import __version__
from tenantsync.core.app_state import AppState
from tenantsync.core.fastapi_types import FastAPI
from tenantsync.infra.persistence.pg_client import PostgresClient
from tenantsync.infra.persistence.redis_client import RedisClient
from tenantsync.user_sync.cache_projector import UserCacheProjector
from tenantsync.user_sync.synchronizer import UserSynchronizer
from tenantsync.user_sync.user_store import UserStore

logger = logging.getLogger("tenantsync.lifespan")

SHUTDOWN_TIMEOUT_SECONDS = 30.0


async def initialize_infrastructure(app_instance: FastAPI) -> None:
    """Open the Postgres pool and the Redis client."""
    pg_config = get_postgres_config()

    pg_client = PostgresClient(pg_config)
    await pg_client.init()
    app_instance.state.pg_client = pg_client

    if pg_config.run_schema_on_startup:
        await pg_client.run_schema()

    redis_client = RedisClient()
    try:
        await redis_client.init()
    except Exception as e:
        # Writes degrade to store-only and reads fall back to the store
        logger.warning(f"Redis unavailable at startup, continuing without a warm cache: {e}")
    app_instance.state.redis_client = redis_client


def initialize_user_sync(app_instance: FastAPI) -> None:
    """Build the store, cache projector and synchronizer on top of the clients."""
    state = app_instance.state
    state.user_store = UserStore(state.pg_client)
    state.cache_projector = UserCacheProjector(state.redis_client)
    state.synchronizer = UserSynchronizer(state.user_store, state.cache_projector)


async def shutdown_all_services(app_instance: FastAPI) -> None:
    """Close Redis first, then the Postgres pool."""
    state = app_instance.state

    redis_client = getattr(state, "redis_client", None)
    if redis_client is not None:
        await redis_client.close()
        logger.info("Redis client closed")

    pg_client = getattr(state, "pg_client", None)
    if pg_client is not None:
        await pg_client.close()


@asynccontextmanager
async def lifespan(app_instance: FastAPI):
    """Application lifespan manager with structured initialization"""

    logger.info(f"tenantsync {__version__} starting up...")

    app_instance.state = AppState()

    try:
        logger.info("Phase 1: Initializing store and cache clients...")
        await initialize_infrastructure(app_instance)

        logger.info("Phase 2: Initializing user synchronizer...")
        initialize_user_sync(app_instance)

        logger.info("Startup complete")
    except Exception as e:
        logger.critical(f"Startup failed: {e}", exc_info=True)
        await shutdown_all_services(app_instance)
        raise

    yield

    logger.info("Shutting down...")
    try:
        async with asyncio.timeout(SHUTDOWN_TIMEOUT_SECONDS):
            await shutdown_all_services(app_instance)
        logger.info("Shutdown complete")
    except TimeoutError:
        logger.error(f"Shutdown timed out after {SHUTDOWN_TIMEOUT_SECONDS:.0f}s")
    except Exception as e:
        logger.error(f"Error during shutdown: {e}", exc_info=True)
