# tenantsync/infra/metrics/sync_metrics.py
"""User synchronization metrics."""

from prometheus_client import Counter, Histogram

sync_operations = Counter(
    'tenantsync_sync_operations_total',
    'Lifecycle events processed by the synchronizer',
    ['operation', 'result']  # result: ok/validation_error/not_found/store_error
)

sync_operation_duration = Histogram(
    'tenantsync_sync_operation_duration_seconds',
    'Time spent handling a lifecycle event end to end',
    ['operation'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

cache_lookups = Counter(
    'tenantsync_cache_lookups_total',
    'Projection cache lookups on the read path',
    ['result']  # result: hit/miss/error
)

cache_write_failures = Counter(
    'tenantsync_cache_write_failures_total',
    'Cache writes or evictions that failed after the store committed',
    ['operation']
)
