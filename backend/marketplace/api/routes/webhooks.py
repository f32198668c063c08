"""
Razorpay Webhook Handler

Entry point for asynchronous gateway callbacks. The raw body is
authenticated before it is parsed, exact redeliveries are short-circuited by
gateway event ID, and each event is routed to exactly one idempotent
state-machine operation.

Acknowledgement policy:
- 401 forged or unsigned call, 500 webhook secret not configured
- 400 body cannot be decoded into a known event
- 500 database unreachable (the operations are idempotent, so a gateway
  retry is safe)
- 200 everything else, including unknown events and handler failures the
  gateway could not fix by retrying
"""

import logging

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError

from marketplace.api.dependencies import SettingsDep, WebhookProcessorDep
from marketplace.domain.events import parse_event
from marketplace.infrastructure.exceptions import MalformedEventError
from marketplace.infrastructure.payments.webhook_authenticator import (
    WebhookVerification,
    verify,
)
from marketplace.infrastructure.services.webhook_processor import event_name


logger = logging.getLogger(__name__)

router = APIRouter()

SIGNATURE_HEADER = "X-Razorpay-Signature"
EVENT_ID_HEADER = "X-Razorpay-Event-Id"


# =============================================================================
# Webhook Endpoint
# =============================================================================

@router.post("/webhooks/razorpay")
async def razorpay_webhook(
    request: Request,
    settings: SettingsDep,
    processor: WebhookProcessorDep,
):
    """
    Handle Razorpay webhook events.

    Verifies the signature over the raw body, then applies the event.
    """
    payload = await request.body()

    verification = verify(
        payload,
        request.headers.get(SIGNATURE_HEADER),
        settings.razorpay_webhook_secret,
    )
    if verification == WebhookVerification.NOT_CONFIGURED:
        logger.error("RAZORPAY_WEBHOOK_SECRET is not configured; rejecting webhook")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook secret not configured",
        )
    if verification == WebhookVerification.MISSING_SIGNATURE:
        logger.warning("Webhook received without signature")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing signature",
        )
    if verification == WebhookVerification.FORGED:
        logger.warning("Webhook signature verification failed")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid signature",
        )

    try:
        event = parse_event(payload)
    except MalformedEventError as e:
        logger.error(f"Malformed webhook body: {e.message} {e.details}")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=e.to_dict())

    event_type = event_name(event)
    event_id = request.headers.get(EVENT_ID_HEADER)

    # Idempotency check
    if event_id and await processor.is_processed(event_id):
        logger.info(f"Event {event_id} already processed, skipping")
        return {"status": "already_processed"}

    logger.info(f"Processing webhook event: {event_type} ({event_id or 'no id'})")

    try:
        await processor.dispatch(event)
    except (OperationalError, InterfaceError) as e:
        logger.error(f"Database unavailable while processing {event_type}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Temporary failure, retry later",
        )
    except Exception as e:
        logger.exception(f"Error processing webhook {event_type}: {e}")
        # 200 so the gateway stops retrying an event it cannot fix
        return {"status": "error", "message": str(e)}

    if event_id:
        await processor.mark_processed(event_id, event_type)

    return {"status": "success"}
