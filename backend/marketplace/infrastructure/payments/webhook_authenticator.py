"""
Webhook Authenticator

Verifies that an inbound webhook body was signed by the payment gateway.
The gateway signs the exact raw bytes it sent with HMAC-SHA256 using the
shared webhook secret and puts the lowercase hex digest in
``X-Razorpay-Signature``.

Pure function, no I/O. Must run before the body is parsed.
"""

import hashlib
import hmac
from enum import Enum
from typing import Optional


class WebhookVerification(str, Enum):
    """Outcome of signature verification."""
    AUTHENTIC = "AUTHENTIC"
    FORGED = "FORGED"
    MISSING_SIGNATURE = "MISSING_SIGNATURE"
    NOT_CONFIGURED = "NOT_CONFIGURED"


def compute_signature(raw_body: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of the body under the webhook secret."""
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify(
    raw_body: bytes,
    signature: Optional[str],
    secret: Optional[str],
) -> WebhookVerification:
    """
    Check a webhook signature.

    A missing secret is reported before anything else so a misconfigured
    deployment never accepts a call.

    Args:
        raw_body: Request body exactly as received
        signature: Value of the signature header, if present
        secret: Configured webhook secret, if any

    Returns:
        WebhookVerification outcome
    """
    if not secret:
        return WebhookVerification.NOT_CONFIGURED
    if not signature:
        return WebhookVerification.MISSING_SIGNATURE

    # Exact bytes: no case folding or trimming of the header value.
    expected = compute_signature(raw_body, secret).encode("ascii")
    provided = signature.encode("utf-8")
    if hmac.compare_digest(expected, provided):
        return WebhookVerification.AUTHENTIC
    return WebhookVerification.FORGED
