# =============================================================================
# File: tenantsync/config/cache_config.py
# Description: Projection cache configuration
# =============================================================================

from functools import lru_cache
from pydantic import Field
from pydantic_settings import SettingsConfigDict

from tenantsync.common.base.base_config import BaseConfig


class CacheConfig(BaseConfig):
    """Key layout and TTLs for the per-tenant user projection cache."""

    model_config = SettingsConfigDict(
        env_prefix='CACHE_',
    )

    enabled: bool = Field(default=True, description="Write projections after store commits")
    key_prefix: str = Field(default="tenant", description="First segment of every cache key")
    ttl_user_projection: int = Field(default=86400, ge=1, description="Projection TTL in seconds")


@lru_cache(maxsize=1)
def get_cache_config() -> CacheConfig:
    """Get cache configuration singleton (cached)."""
    return CacheConfig()


def reset_cache_config() -> None:
    """Reset config singleton (for testing)."""
    get_cache_config.cache_clear()
