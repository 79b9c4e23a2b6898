# =============================================================================
# File: tenantsync/config/reliability_config.py
# Description: Circuit breaker and retry policies for the user store and the
#              projection cache
# =============================================================================

from functools import lru_cache
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import SettingsConfigDict

from tenantsync.common.base.base_config import BaseConfig
from tenantsync.config.redis_config import RedisConfig


class CircuitBreakerConfig(BaseModel):
    """Breaker thresholds for one dependency."""
    name: str
    failure_threshold: int = 5
    success_threshold: int = 3
    reset_timeout_seconds: int = 30
    half_open_max_calls: int = 3
    # Optional sliding window; trips on failure rate as well as on consecutive failures
    window_size: Optional[int] = None
    failure_rate_threshold: Optional[float] = None


class RetryConfig(BaseModel):
    """Exponential backoff policy for retry_async."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    max_attempts: int = 3
    initial_delay_ms: int = 100
    max_delay_ms: int = 10000
    backoff_factor: float = 2.0
    jitter: bool = True
    exponential_base: Optional[float] = None
    jitter_type: str = "full"
    # Returns True when the error may be retried; None retries everything
    retry_condition: Optional[Callable[[Exception], bool]] = None


class ReliabilitySettings(BaseConfig):
    """Store-side reliability knobs (RELIABILITY_*)."""

    model_config = SettingsConfigDict(
        env_prefix='RELIABILITY_',
    )

    store_failure_threshold: int = Field(default=5, ge=1)
    store_reset_timeout: int = Field(default=30, ge=1)
    connect_retry_attempts: int = Field(default=3, ge=1)
    # Attempts per transaction when Postgres reports a serialization failure or deadlock
    transaction_conflict_retries: int = Field(default=5, ge=1)


@lru_cache(maxsize=1)
def get_reliability_settings() -> ReliabilitySettings:
    """Get reliability settings singleton (cached)."""
    return ReliabilitySettings()


def reset_reliability_settings() -> None:
    """Reset settings singleton (for testing)."""
    get_reliability_settings.cache_clear()


class ReliabilityConfigs:
    """Named presets built from the settings above."""

    # =========================================================================
    # PostgreSQL (user store)
    # =========================================================================
    @staticmethod
    def store_circuit_breaker(name: str) -> CircuitBreakerConfig:
        settings = get_reliability_settings()
        return CircuitBreakerConfig(
            name=f"postgres_{name}",
            failure_threshold=settings.store_failure_threshold,
            reset_timeout_seconds=settings.store_reset_timeout,
            half_open_max_calls=3,
            success_threshold=2,
        )

    @staticmethod
    def store_connect_retry(retry_condition: Optional[Callable[[Exception], bool]] = None) -> RetryConfig:
        return RetryConfig(
            max_attempts=get_reliability_settings().connect_retry_attempts,
            initial_delay_ms=200,
            max_delay_ms=5000,
            backoff_factor=2.0,
            retry_condition=retry_condition,
        )

    @staticmethod
    def transaction_conflict_retry(
            retry_condition: Callable[[Exception], bool],
            max_attempts: Optional[int] = None,
    ) -> RetryConfig:
        # Conflicts clear as soon as the competing transaction finishes
        return RetryConfig(
            max_attempts=max_attempts or get_reliability_settings().transaction_conflict_retries,
            initial_delay_ms=0,
            max_delay_ms=100,
            backoff_factor=1.5,
            jitter_type="equal",
            retry_condition=retry_condition,
        )

    # =========================================================================
    # Redis (projection cache)
    # =========================================================================
    @staticmethod
    def cache_circuit_breaker(config: RedisConfig) -> CircuitBreakerConfig:
        return CircuitBreakerConfig(
            name="redis_cache",
            failure_threshold=config.circuit_failure_threshold,
            reset_timeout_seconds=config.circuit_reset_timeout,
            half_open_max_calls=1,
            success_threshold=1,
        )

    @staticmethod
    def cache_retry(config: RedisConfig, retry_condition: Optional[Callable[[Exception], bool]] = None) -> RetryConfig:
        return RetryConfig(
            max_attempts=config.retry_max_attempts,
            initial_delay_ms=config.retry_initial_delay_ms,
            max_delay_ms=config.retry_max_delay_ms,
            backoff_factor=2.0,
            retry_condition=retry_condition,
        )
