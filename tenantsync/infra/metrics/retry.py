# tenantsync/infra/metrics/retry.py
"""Retry mechanism metrics."""

from prometheus_client import Counter

retry_attempts = Counter(
    'tenantsync_retry_attempts_total',
    'Failed attempts followed by a retry, and operations that succeeded after retrying',
    ['name', 'success']
)

retry_exhausted = Counter(
    'tenantsync_retry_exhausted_total',
    'Total retries exhausted',
    ['name']
)
