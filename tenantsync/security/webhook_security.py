# =============================================================================
# File: tenantsync/security/webhook_security.py
# Description: Signature verification for CMS webhook requests
# =============================================================================
# The CMS signs each delivery with HMAC-SHA256 over the exact request body
# and sends the hex digest in a header. The digest is checked against the raw
# bytes, never against a re-serialized JSON document.
# =============================================================================

from __future__ import annotations

import hashlib
import hmac
from typing import Optional

from tenantsync.common.exceptions.exceptions import SignatureError
from tenantsync.config.logging_config import get_logger
from tenantsync.config.webhook_config import WebhookConfig

log = get_logger("tenantsync.security.webhook")


def compute_signature(body: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of body under secret."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_webhook_signature(body: bytes, signature: Optional[str], secret: str) -> bool:
    """
    Check a webhook signature header.

    Args:
        body: Raw request body
        signature: Value of the signature header (None when absent)
        secret: Shared secret configured for the CMS

    Returns:
        True if the signature matches, False otherwise
    """
    if not signature:
        return False
    expected = compute_signature(body, secret)
    # Constant-time comparison
    return hmac.compare_digest(expected, signature.strip().lower())


def require_valid_signature(body: bytes, signature: Optional[str], config: WebhookConfig) -> None:
    """Raise SignatureError unless the request is authenticated (or signing is disabled)."""
    if not config.require_signature:
        return

    if config.secret is None or not config.secret.get_secret_value():
        log.error("Webhook signature required but WEBHOOK_SECRET is not configured")
        raise SignatureError("Webhook secret not configured")

    if not signature:
        log.warning(f"Webhook request missing {config.signature_header} header")
        raise SignatureError("No signature provided")

    if not verify_webhook_signature(body, signature, config.secret.get_secret_value()):
        log.warning("Webhook request with invalid signature rejected")
        raise SignatureError("Invalid signature")
