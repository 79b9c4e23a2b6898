# tenantsync/core/routes.py
# =============================================================================
# File: tenantsync/core/routes.py
# Description: Route registration for FastAPI application
# =============================================================================

import logging

from tenantsync.api.routers.metrics_router import router as metrics_router
from tenantsync.api.routers.user_router import router as user_router
from tenantsync.api.routers.webhook_router import router as webhook_router
from tenantsync.core.fastapi_types import FastAPI
from tenantsync.core.health import register_health_endpoints

logger = logging.getLogger("tenantsync.routes")


def setup_routes(app: FastAPI) -> None:
    """Register all routers with the FastAPI application"""

    app.include_router(webhook_router)
    app.include_router(user_router)
    app.include_router(metrics_router)

    register_health_endpoints(app)

    logger.info("Routers registered")
