# =============================================================================
# File: tenantsync/config/pg_client_config.py
# Description: Pool, timeout and bootstrap settings for the user store
# =============================================================================

from functools import lru_cache
from typing import Any, Dict, Optional

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from tenantsync.common.base.base_config import BaseConfig


class PostgresConfig(BaseConfig):
    """PostgreSQL settings (PG_*). The DSN itself is read from POSTGRES_DSN."""

    model_config = SettingsConfigDict(
        env_prefix='PG_',
        populate_by_name=True,
    )

    dsn: Optional[str] = Field(default=None, alias="POSTGRES_DSN")
    application_name: str = "tenantsync"

    # Pool
    pool_min_size: int = Field(default=2, ge=0)
    pool_max_size: int = Field(default=20, ge=1)
    pool_timeout: float = Field(default=5.0, gt=0, description="Seconds to establish a new server connection")
    acquire_timeout: float = Field(default=5.0, gt=0, description="Seconds to wait for a free pooled connection")
    pool_command_timeout: float = Field(default=10.0, gt=0, description="Default per-statement timeout")
    pool_max_queries: int = 50000
    pool_max_inactive_lifetime: float = 300.0

    # A store transaction that runs longer than this is cancelled and rolled back
    transaction_timeout: float = Field(default=15.0, gt=0)

    # Schema bootstrap
    run_schema_on_startup: bool = False
    schema_path: Optional[str] = Field(default=None, description="Override for the bundled schema.sql")

    # Health and monitoring
    health_check_query: str = "SELECT 1"
    health_check_timeout: float = 5.0
    slow_query_threshold_ms: float = 1000.0
    long_transaction_threshold_ms: float = 2000.0
    pool_exhaustion_threshold: float = Field(default=0.9, gt=0, le=1)

    def pool_params(self) -> Dict[str, Any]:
        """Keyword arguments for asyncpg.create_pool (minus dsn and init)."""
        return {
            'min_size': self.pool_min_size,
            'max_size': self.pool_max_size,
            'timeout': self.pool_timeout,
            'command_timeout': self.pool_command_timeout,
            'max_queries': self.pool_max_queries,
            'max_inactive_connection_lifetime': self.pool_max_inactive_lifetime,
            'server_settings': {'application_name': self.application_name},
        }


@lru_cache(maxsize=1)
def get_postgres_config() -> PostgresConfig:
    """Get PostgreSQL configuration singleton (cached)."""
    return PostgresConfig()


def reset_postgres_config() -> None:
    """Reset config singleton (for testing)."""
    get_postgres_config.cache_clear()
