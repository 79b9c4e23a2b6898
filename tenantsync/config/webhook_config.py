# =============================================================================
# File: tenantsync/config/webhook_config.py
# Description: Settings for the CMS webhook intake endpoint
# =============================================================================

from functools import lru_cache
from typing import Optional
from pydantic import Field, SecretStr
from pydantic_settings import SettingsConfigDict

from tenantsync.common.base.base_config import BaseConfig


class WebhookConfig(BaseConfig):
    """How upstream webhook requests are authenticated and routed."""

    model_config = SettingsConfigDict(
        env_prefix='WEBHOOK_',
    )

    secret: Optional[SecretStr] = Field(default=None, description="HMAC-SHA256 key shared with the CMS")
    require_signature: bool = Field(default=True)
    signature_header: str = Field(default="strapi-signature")
    tenant_header: str = Field(default="x-company-id")
    accepted_model: str = Field(default="user", description="CMS content type that carries users")


@lru_cache(maxsize=1)
def get_webhook_config() -> WebhookConfig:
    """Get webhook configuration singleton (cached)."""
    return WebhookConfig()


def reset_webhook_config() -> None:
    """Reset config singleton (for testing)."""
    get_webhook_config.cache_clear()
