# =============================================================================
# File: tenantsync/api/routers/webhook_router.py
# Description: CMS webhook intake for user lifecycle events
# =============================================================================

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as PydanticValidationError

from tenantsync.api.dependencies import get_synchronizer, tenant_from_headers
from tenantsync.api.models.webhook_api_models import ErrorResponse, WebhookPayload, WebhookResponse
from tenantsync.common.exceptions.exceptions import ValidationError
from tenantsync.config.webhook_config import WebhookConfig, get_webhook_config
from tenantsync.security.webhook_security import require_valid_signature
from tenantsync.user_sync.events import SyncEvent
from tenantsync.user_sync.synchronizer import UserSynchronizer

log = logging.getLogger("tenantsync.api.webhook")

router = APIRouter(prefix="/strapi", tags=["webhook"])


ERROR_RESPONSES = {code: {"model": ErrorResponse} for code in (400, 401, 404, 503)}


@router.post("/webhook", response_model=WebhookResponse, responses=ERROR_RESPONSES)
async def strapi_webhook(
        request: Request,
        synchronizer: UserSynchronizer = Depends(get_synchronizer),
        config: WebhookConfig = Depends(get_webhook_config),
) -> WebhookResponse:
    """
    Apply a CMS user lifecycle event for the tenant named in the tenant header.

    Responses:
        200: processed, or acknowledged and ignored (other models/events)
        400: missing tenant header or malformed body
        401: missing or invalid signature
        404: update/delete for an unknown user or tenant slice
        503: store unavailable
    """
    body = await request.body()
    require_valid_signature(body, request.headers.get(config.signature_header), config)
    tenant_id = tenant_from_headers(request, config)

    try:
        payload = WebhookPayload.model_validate_json(body or b"{}")
    except PydanticValidationError as e:
        raise ValidationError(f"Malformed webhook body: {e.errors()[0].get('msg')}") from e

    log.info(f"Received webhook event={payload.event} model={payload.model} tenant={tenant_id}")

    if payload.model != config.accepted_model:
        return WebhookResponse(message="Ignoring non-user event", event=payload.event)

    event = SyncEvent.from_webhook(payload.event, payload.entry, tenant_id)
    if event is None:
        log.info(f"Unhandled webhook event type: {payload.event}")
        return WebhookResponse(message="Unhandled event type", event=payload.event)

    user = await synchronizer.handle_event(event)
    return WebhookResponse(message="Webhook processed successfully", event=payload.event, user=user)
