# =============================================================================
# File: tenantsync/server.py
# Description: FastAPI application entry point
# =============================================================================

from __future__ import annotations

import os
import logging

from tenantsync.core.fastapi_types import FastAPI
from tenantsync.core import __version__
from tenantsync.core.lifespan import lifespan
from tenantsync.core.middleware import setup_middleware
from tenantsync.core.routes import setup_routes
from tenantsync.core.exceptions import setup_exception_handlers
from tenantsync.config.logging_config import setup_logging

# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================
setup_logging(
    service_name="api",
    log_file=os.getenv("LOG_FILE") or None,
    enable_json=os.getenv("ENVIRONMENT") == "production",
)

logger = logging.getLogger("tenantsync.server")

# =============================================================================
# FASTAPI APP
# =============================================================================
app = FastAPI(
    title=f"tenantsync v{__version__}",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

setup_middleware(app)
setup_routes(app)
setup_exception_handlers(app)

__all__ = ["app", "__version__"]

# =============================================================================
# Development entry point
# =============================================================================
if __name__ == "__main__":
    import subprocess

    port = os.getenv("PORT", "5001")
    host = os.getenv("HOST", "0.0.0.0")
    reload = os.getenv("RELOAD", "true").lower() == "true"

    logger.info(f"Starting tenantsync on {host}:{port} (reload={reload})")

    cmd = [
        "granian",
        "--interface", "asgi",
        "tenantsync.server:app",
        "--host", host,
        "--port", str(port),
    ]

    if reload:
        cmd.extend([
            "--reload",
            "--reload-paths", "tenantsync/",
        ])

    subprocess.run(cmd)
