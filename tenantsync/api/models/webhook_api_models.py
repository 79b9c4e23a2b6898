# =============================================================================
#  File: tenantsync/api/models/webhook_api_models.py
#  Pydantic models for the webhook intake and user lookup endpoints
# =============================================================================

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class WebhookPayload(BaseModel):
    """CMS webhook body. Only the fields the service routes on are declared."""
    event: Optional[str] = None
    model: Optional[str] = None
    entry: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")


class WebhookResponse(BaseModel):
    """Acknowledgement returned to the CMS."""
    ok: bool = True
    message: str
    event: Optional[str] = None
    user: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    detail: str
    type: Optional[str] = None
