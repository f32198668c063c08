"""
API Dependencies

FastAPI dependency injection for authentication and the service layer.

Tokens are issued by the external auth service and verified here with the
shared HS256 secret. Never decode without verification.
"""

import hmac
import logging
from dataclasses import dataclass
from typing import Annotated, Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from marketplace.config.settings import Settings, get_settings
from marketplace.infrastructure.db.dependencies import DatabaseDep
from marketplace.infrastructure.exceptions import ConfigurationError
from marketplace.infrastructure.payments.razorpay_service import (
    RazorpayService,
    get_razorpay_service,
)
from marketplace.infrastructure.services.gig_service import GigService
from marketplace.infrastructure.services.notifier import Notifier
from marketplace.infrastructure.services.order_service import OrderService
from marketplace.infrastructure.services.reconciliation_service import ReconciliationService
from marketplace.infrastructure.services.subscription_service import SubscriptionService
from marketplace.infrastructure.services.webhook_processor import WebhookProcessor


logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

SettingsDep = Annotated[Settings, Depends(get_settings)]


# =============================================================================
# Authentication
# =============================================================================

@dataclass(frozen=True)
class CurrentUser:
    """Authenticated caller."""
    id: str
    role: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


async def get_current_user(
    settings: SettingsDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """
    Extract and verify the caller from a bearer JWT.

    Returns:
        CurrentUser with the ``sub`` claim as id and the optional ``role`` claim

    Raises:
        HTTPException 401: token missing, expired, or invalid
        ConfigurationError: JWT_SECRET not set
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not settings.jwt_secret:
        raise ConfigurationError("JWT_SECRET is not configured", missing_keys=["JWT_SECRET"])

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
        )
    except jwt.InvalidTokenError as e:
        logger.warning("JWT verification failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or unverifiable token",
        )

    return CurrentUser(id=str(payload["sub"]), role=payload.get("role"))


CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]


async def require_cron_secret(
    settings: SettingsDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> None:
    """Guard for scheduler-invoked endpoints (Bearer CRON_SECRET)."""
    if not settings.cron_secret:
        raise ConfigurationError("CRON_SECRET is not configured", missing_keys=["CRON_SECRET"])
    if not credentials or not hmac.compare_digest(credentials.credentials, settings.cron_secret):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


# =============================================================================
# Services
# =============================================================================

GatewayDep = Annotated[RazorpayService, Depends(get_razorpay_service)]


def get_notifier(db: DatabaseDep) -> Notifier:
    return Notifier(db)


NotifierDep = Annotated[Notifier, Depends(get_notifier)]


def get_subscription_service(
    db: DatabaseDep,
    notifier: NotifierDep,
    gateway: GatewayDep,
) -> SubscriptionService:
    return SubscriptionService(db, notifier, gateway)


SubscriptionServiceDep = Annotated[SubscriptionService, Depends(get_subscription_service)]


def get_order_service(
    db: DatabaseDep,
    notifier: NotifierDep,
    settings: SettingsDep,
) -> OrderService:
    return OrderService(db, notifier, settings.platform_fee_percentage)


OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]


def get_gig_service(db: DatabaseDep, subscriptions: SubscriptionServiceDep) -> GigService:
    return GigService(db, subscriptions)


GigServiceDep = Annotated[GigService, Depends(get_gig_service)]


def get_webhook_processor(db: DatabaseDep, subscriptions: SubscriptionServiceDep) -> WebhookProcessor:
    return WebhookProcessor(db, subscriptions)


WebhookProcessorDep = Annotated[WebhookProcessor, Depends(get_webhook_processor)]


def get_reconciliation_service(
    subscriptions: SubscriptionServiceDep,
    gateway: GatewayDep,
) -> ReconciliationService:
    return ReconciliationService(subscriptions, gateway)


ReconciliationServiceDep = Annotated[ReconciliationService, Depends(get_reconciliation_service)]
