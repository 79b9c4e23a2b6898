# tenantsync/api/routers/metrics_router.py
"""
Prometheus metrics endpoint
"""

import logging

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

# Imported so every metric family is registered before the first scrape
from tenantsync.infra.metrics import circuit_breaker, retry, sync_metrics  # noqa: F401

log = logging.getLogger("tenantsync.metrics")

router = APIRouter(tags=["monitoring"])


@router.get("/metrics")
async def prometheus_metrics():
    """
    Prometheus metrics endpoint

    Exposes metrics in Prometheus text format for scraping:
    - Sync operation counts and latency
    - Projection cache hits, misses and write failures
    - Circuit breaker states and retry counts

    Usage:
        curl http://localhost:8000/metrics
    """
    try:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
    except Exception as e:
        log.error(f"Failed to generate metrics: {e}", exc_info=True)
        return Response(
            content=f"# Error generating metrics: {e}\n",
            media_type="text/plain",
            status_code=500
        )
