# tenantsync/core/exceptions.py
# =============================================================================
# File: tenantsync/core/exceptions.py
# Description: Exception handlers for FastAPI application
# =============================================================================

import logging
import os

from fastapi import Request
from starlette import status
from starlette.responses import JSONResponse

from tenantsync.common.exceptions.exceptions import (
    CacheError,
    NotFoundError,
    SignatureError,
    StoreError,
    TenantSyncException,
    ValidationError,
)
from tenantsync.core.fastapi_types import FastAPI

logger = logging.getLogger("tenantsync.exceptions")

STATUS_BY_ERROR = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (SignatureError, status.HTTP_401_UNAUTHORIZED),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (StoreError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (CacheError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def _is_production() -> bool:
    return os.getenv("ENVIRONMENT", "development") == "production"


def status_for(exc: TenantSyncException) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application"""

    app.add_exception_handler(TenantSyncException, tenantsync_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info("Exception handlers registered")


async def tenantsync_exception_handler(request: Request, exc: TenantSyncException) -> JSONResponse:
    """Map domain errors to HTTP status codes"""
    status_code = status_for(exc)

    if status_code >= 500:
        logger.error(f"{type(exc).__name__} on path {request.url.path}: {exc}")
        detail = "Service temporarily unavailable." if _is_production() else str(exc)
    else:
        logger.warning(f"{type(exc).__name__} on path {request.url.path}: {exc}")
        detail = str(exc)

    return JSONResponse(
        status_code=status_code,
        content={"detail": detail, "type": type(exc).__name__},
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle general unhandled exceptions"""
    logger.error(f"Unhandled exception on path {request.url.path}: {str(exc)}", exc_info=True)

    if _is_production():
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "An internal server error occurred."}
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc), "type": type(exc).__name__}
    )
