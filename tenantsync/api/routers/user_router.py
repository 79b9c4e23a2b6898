# =============================================================================
# File: tenantsync/api/routers/user_router.py
# Description: Tenant-scoped user lookups
# =============================================================================

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from tenantsync.api.dependencies import get_synchronizer, tenant_from_headers
from tenantsync.config.webhook_config import WebhookConfig, get_webhook_config
from tenantsync.user_sync.synchronizer import UserSynchronizer

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}")
async def get_user(
        user_id: int,
        request: Request,
        synchronizer: UserSynchronizer = Depends(get_synchronizer),
        config: WebhookConfig = Depends(get_webhook_config),
) -> Dict[str, Any]:
    """User as seen by the tenant in the tenant header."""
    tenant_id = tenant_from_headers(request, config)
    return await synchronizer.get_user(user_id, tenant_id)
