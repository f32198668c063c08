"""
Payment Gateway Webhook Events

Closed set of typed events decoded from verified Razorpay webhook bodies.
Each known event name maps to exactly one class; anything else becomes an
UnknownEvent that is acknowledged and logged.

Body shape:
    {"event": "subscription.charged",
     "payload": {"subscription": {"entity": {...}},
                 "payment": {"entity": {...}}}}
"""

import json
from typing import Any, ClassVar, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from marketplace.infrastructure.exceptions import MalformedEventError


# =============================================================================
# Gateway entities
# =============================================================================

class SubscriptionEntity(BaseModel):
    """Subset of the gateway subscription entity this system reads."""
    model_config = ConfigDict(extra="allow")

    id: str
    plan_id: Optional[str] = None
    status: Optional[str] = None
    charge_at: Optional[int] = None
    total_count: Optional[int] = None


class PaymentEntity(BaseModel):
    """Subset of the gateway payment entity this system reads."""
    model_config = ConfigDict(extra="allow")

    id: str
    amount: int = 0
    currency: Optional[str] = None
    status: Optional[str] = None
    notes: dict[str, Any] = Field(default_factory=dict)

    @field_validator("notes", mode="before")
    @classmethod
    def empty_notes(cls, value: Any) -> Any:
        """The gateway sends an empty JSON array when there are no notes."""
        if value is None or value == []:
            return {}
        return value

    @property
    def related_subscription_id(self) -> Optional[str]:
        """Gateway subscription id recorded in the payment notes, if any."""
        return self.notes.get("subscriptionId") or self.notes.get("subscription_id")

    @property
    def is_subscription_payment(self) -> bool:
        return self.notes.get("type") == "subscription" or bool(self.related_subscription_id)


# =============================================================================
# Events
# =============================================================================

class SubscriptionCharged(BaseModel):
    name: ClassVar[str] = "subscription.charged"
    subscription: SubscriptionEntity
    payment: PaymentEntity


class SubscriptionCancelled(BaseModel):
    name: ClassVar[str] = "subscription.cancelled"
    subscription: SubscriptionEntity


class SubscriptionHalted(BaseModel):
    name: ClassVar[str] = "subscription.halted"
    subscription: SubscriptionEntity


class SubscriptionActivated(BaseModel):
    name: ClassVar[str] = "subscription.activated"
    subscription: SubscriptionEntity


class PaymentCaptured(BaseModel):
    name: ClassVar[str] = "payment.captured"
    payment: PaymentEntity


class PaymentFailed(BaseModel):
    name: ClassVar[str] = "payment.failed"
    payment: PaymentEntity


class UnknownEvent(BaseModel):
    """A well-formed event this system does not model."""
    event_type: str


WebhookEvent = Union[
    SubscriptionCharged,
    SubscriptionCancelled,
    SubscriptionHalted,
    SubscriptionActivated,
    PaymentCaptured,
    PaymentFailed,
    UnknownEvent,
]

KNOWN_EVENTS: dict[str, type[BaseModel]] = {
    cls.name: cls
    for cls in (
        SubscriptionCharged,
        SubscriptionCancelled,
        SubscriptionHalted,
        SubscriptionActivated,
        PaymentCaptured,
        PaymentFailed,
    )
}


def parse_event(raw_body: bytes) -> WebhookEvent:
    """
    Decode a verified webhook body into a typed event.

    Only call this after the body has been authenticated.

    Raises:
        MalformedEventError: Body is not JSON, has no event name, or a known
            event is missing an entity it requires
    """
    try:
        document = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError) as e:
        raise MalformedEventError("Webhook body is not valid JSON", original_error=e)

    if not isinstance(document, dict) or not isinstance(document.get("event"), str):
        raise MalformedEventError("Webhook body has no event name")

    event_type = document["event"]
    event_cls = KNOWN_EVENTS.get(event_type)
    if event_cls is None:
        return UnknownEvent(event_type=event_type)

    payload = document.get("payload") or {}
    if not isinstance(payload, dict):
        raise MalformedEventError(
            f"Payload of {event_type} is not an object",
            details={"event": event_type},
        )

    entities = {}
    for key in event_cls.model_fields:
        wrapper = payload.get(key)
        if isinstance(wrapper, dict) and "entity" in wrapper:
            entities[key] = wrapper["entity"]

    try:
        return event_cls.model_validate(entities)
    except PydanticValidationError as e:
        raise MalformedEventError(
            f"Payload of {event_type} is missing required data",
            details={
                "event": event_type,
                "fields": [".".join(str(part) for part in err["loc"]) for err in e.errors()],
            },
            original_error=e,
        )
