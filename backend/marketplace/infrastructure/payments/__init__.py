"""
Payments Infrastructure Module

Razorpay gateway client and webhook signature verification.
"""

from marketplace.infrastructure.payments.razorpay_service import (
    RazorpayService,
    get_razorpay_service,
)
from marketplace.infrastructure.payments.webhook_authenticator import (
    WebhookVerification,
    verify,
)

__all__ = [
    "RazorpayService",
    "get_razorpay_service",
    "WebhookVerification",
    "verify",
]
