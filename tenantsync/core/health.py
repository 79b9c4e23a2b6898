# tenantsync/core/health.py
# =============================================================================
# File: tenantsync/core/health.py
# Description: Health check endpoints for the application
# =============================================================================

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from starlette.responses import JSONResponse

from tenantsync.core import __version__
from tenantsync.core.app_state import get_start_time
from tenantsync.core.fastapi_types import FastAPI

logger = logging.getLogger("tenantsync.health")


def register_health_endpoints(app: FastAPI) -> None:
    """Register health check endpoints directly on the app"""

    @app.get("/health", tags=["System"])
    async def health_check() -> JSONResponse:
        """Store and cache health; 503 while the store is unreachable"""
        health_data = await get_health_status(app)
        status_code = 503 if health_data["status"] == "unhealthy" else 200
        return JSONResponse(status_code=status_code, content=health_data)

    @app.get("/", tags=["System"])
    async def root() -> Dict[str, Any]:
        """Root endpoint with API information"""
        return {
            "service": "tenantsync",
            "version": __version__,
            "endpoints": ["/strapi/webhook", "/users/{user_id}", "/health", "/metrics"],
        }


async def get_health_status(app: FastAPI) -> Dict[str, Any]:
    """
    Overall status:
        healthy   - store and cache reachable
        degraded  - store reachable, cache not (reads fall back to the store)
        unhealthy - store unreachable
    """
    now = datetime.now(timezone.utc)
    health_data: Dict[str, Any] = {
        "status": "healthy",
        "version": __version__,
        "timestamp": now.isoformat(),
        "uptime_seconds": int((now - get_start_time()).total_seconds()),
    }

    pg_client = getattr(app.state, "pg_client", None)
    redis_client = getattr(app.state, "redis_client", None)

    if pg_client is not None:
        health_data["postgres"] = await pg_client.health_check()
    else:
        health_data["postgres"] = {"is_healthy": False, "details": {"message": "not configured"}}

    if redis_client is not None:
        health_data["redis"] = await redis_client.health_check()
    else:
        health_data["redis"] = {"is_healthy": False, "error": "not configured"}

    if not health_data["postgres"].get("is_healthy"):
        health_data["status"] = "unhealthy"
    elif not health_data["redis"].get("is_healthy"):
        health_data["status"] = "degraded"

    if health_data["status"] != "healthy":
        logger.warning(f"Health check status: {health_data['status']}")

    return health_data
