# =============================================================================
# File: tenantsync/infra/reliability/retry.py
# Description: Retry mechanism with exponential backoff and jitter
# =============================================================================

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, TypeVar

from tenantsync.config.reliability_config import RetryConfig
from tenantsync.infra.metrics.retry import retry_attempts, retry_exhausted

logger = logging.getLogger("tenantsync.retry")

T = TypeVar('T')


class JitterStrategy(ABC):
    """Base class for jitter strategies."""

    @abstractmethod
    def apply(self, base_delay: float) -> float:
        """Apply jitter to base delay."""


class FullJitter(JitterStrategy):
    """Full jitter: delay = random(0, base_delay)."""

    def apply(self, base_delay: float) -> float:
        return random.uniform(0, base_delay)


class EqualJitter(JitterStrategy):
    """Equal jitter: delay = base_delay/2 + random(0, base_delay/2)."""

    def apply(self, base_delay: float) -> float:
        half = base_delay / 2
        return half + random.uniform(0, half)


def get_jitter_strategy(jitter_type: str) -> JitterStrategy:
    """Get jitter strategy by name; unknown names fall back to full jitter."""
    strategies = {
        'full': FullJitter,
        'equal': EqualJitter,
    }
    return strategies.get(jitter_type, FullJitter)()


def compute_delay_ms(retry_config: RetryConfig, attempt: int) -> float:
    """Un-jittered backoff delay before the attempt following `attempt`."""
    factor = retry_config.exponential_base or retry_config.backoff_factor
    return min(
        retry_config.initial_delay_ms * (factor ** (attempt - 1)),
        retry_config.max_delay_ms
    )


async def retry_async(
        func: Callable[..., Awaitable[T]],
        *args,
        retry_config: Optional[RetryConfig] = None,
        context: str = "operation",
        **kwargs
) -> T:
    """Execute async function with retry logic.

    Errors rejected by ``retry_config.retry_condition`` propagate immediately.
    The last error propagates once ``max_attempts`` is reached.
    """
    if retry_config is None:
        retry_config = RetryConfig()

    jitter_strategy = get_jitter_strategy(retry_config.jitter_type) if retry_config.jitter else None

    attempt = 0
    while True:
        attempt += 1
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            if retry_config.retry_condition and not retry_config.retry_condition(e):
                logger.debug(f"Retry condition not met for {context} after attempt {attempt}. Error: {e}")
                raise

            retry_attempts.labels(name=context, success='false').inc()

            if attempt >= retry_config.max_attempts:
                retry_exhausted.labels(name=context).inc()
                logger.warning(f"Retry exhausted for {context} after {attempt} attempts. Last error: {e}")
                raise

            delay_ms = compute_delay_ms(retry_config, attempt)
            if jitter_strategy:
                delay_ms = jitter_strategy.apply(delay_ms)
            delay_seconds = delay_ms / 1000

            logger.info(
                f"Retry attempt {attempt}/{retry_config.max_attempts} for {context} "
                f"after error: {e}. Waiting {delay_seconds:.2f}s before retry."
            )
            await asyncio.sleep(delay_seconds)
            continue

        if attempt > 1:
            retry_attempts.labels(name=context, success='true').inc()
        return result
