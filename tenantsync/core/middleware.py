# =============================================================================
# File: tenantsync/core/middleware.py
# Description: Middleware configuration for FastAPI application
# =============================================================================

import os
import logging
import time
import uuid

from fastapi import Request
from fastapi.middleware.cors import CORSMiddleware

from tenantsync.core.fastapi_types import FastAPI

logger = logging.getLogger("tenantsync.middleware")

REQUEST_ID_HEADER = "x-request-id"


def setup_middleware(app: FastAPI) -> None:
    """Configure all middleware for the FastAPI application"""
    setup_cors(app)
    setup_request_logging(app)


def setup_cors(app: FastAPI) -> None:
    """CORS for the admin UI; the CMS calls the webhook server-to-server."""
    cors_origins = os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:1337")
    allowed_origins = [origin.strip() for origin in cors_origins.split(",") if origin.strip()]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        max_age=3600,
    )

    logger.info(f"CORS configured with allowed origins: {allowed_origins}")


def setup_request_logging(app: FastAPI) -> None:
    """Tag each request with an id and log its status and latency."""

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.debug(
            f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)",
            extra={"request_id": request_id},
        )
        return response
