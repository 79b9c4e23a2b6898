# =============================================================================
# File: tenantsync/api/dependencies.py
# Description: FastAPI dependencies resolved from application state
# =============================================================================

from __future__ import annotations

from fastapi import Request

from tenantsync.common.exceptions.exceptions import ValidationError
from tenantsync.config.webhook_config import WebhookConfig
from tenantsync.user_sync.synchronizer import UserSynchronizer


async def get_synchronizer(request: Request) -> UserSynchronizer:
    """Get the user synchronizer from application state"""
    synchronizer = getattr(request.app.state, "synchronizer", None)
    if synchronizer is None:
        raise RuntimeError("User synchronizer not configured")
    return synchronizer


def tenant_from_headers(request: Request, config: WebhookConfig) -> str:
    """Tenant id carried in the configured header; ValidationError when missing."""
    tenant_id = (request.headers.get(config.tenant_header) or "").strip()
    if not tenant_id:
        raise ValidationError(f"{config.tenant_header} header is required")
    return tenant_id
