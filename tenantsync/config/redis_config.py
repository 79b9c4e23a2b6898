# =============================================================================
# File: tenantsync/config/redis_config.py
# Description: Connection and resilience settings for the projection cache
# =============================================================================

from functools import lru_cache
from typing import Any, Dict, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import SettingsConfigDict

from tenantsync.common.base.base_config import BaseConfig


# noinspection PyMethodParameters
class RedisConfig(BaseConfig):
    """Redis settings (REDIS_*). Timeouts here bound every cache call."""

    model_config = SettingsConfigDict(
        env_prefix='REDIS_',
    )

    # Connection (use a rediss:// URL for TLS)
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_username: Optional[str] = None
    redis_password: Optional[SecretStr] = None
    max_connections: int = Field(default=50, ge=1, le=1000)
    socket_timeout: float = Field(default=2.0, gt=0, description="Per-command timeout (s)")
    socket_connect_timeout: float = Field(default=2.0, gt=0)

    # Breaker: a dead cache should cost one fast failure, not a timeout per request
    circuit_breaker_enabled: bool = True
    circuit_failure_threshold: int = Field(default=3, ge=1)
    circuit_reset_timeout: int = Field(default=15, ge=1, description="Seconds before a half-open probe")

    # Per-command retry
    retry_max_attempts: int = Field(default=3, ge=1)
    retry_initial_delay_ms: int = Field(default=50, ge=0)
    retry_max_delay_ms: int = Field(default=1000, ge=0)

    slow_command_threshold_ms: int = Field(default=5, description="Log commands slower than this")

    @field_validator('redis_url')
    def _check_scheme(cls, v):
        if not v.startswith(('redis://', 'rediss://', 'unix://')):
            raise ValueError("redis_url must start with redis://, rediss:// or unix://")
        return v

    def get_connection_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for redis.asyncio.from_url."""
        kwargs: Dict[str, Any] = {
            'decode_responses': True,
            'socket_timeout': self.socket_timeout,
            'socket_connect_timeout': self.socket_connect_timeout,
            'max_connections': self.max_connections,
        }
        if self.redis_username:
            kwargs['username'] = self.redis_username
        if self.redis_password:
            kwargs['password'] = self.redis_password.get_secret_value()
        return kwargs


@lru_cache(maxsize=1)
def get_redis_config() -> RedisConfig:
    """Get Redis configuration singleton (cached)."""
    return RedisConfig()


def reset_redis_config() -> None:
    """Reset config singleton (for testing)."""
    get_redis_config.cache_clear()
