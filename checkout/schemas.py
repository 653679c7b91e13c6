import enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class CheckoutRequest(BaseModel):
    customer_name: str = Field(min_length=1)
    customer_email: str
    amount: int = Field(gt=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)


class CheckoutResponse(BaseModel):
    redirect_url: str
    session_id: str


class OrderStatusResponse(BaseModel):
    session_id: str
    status: str
    payment_reference: Optional[str] = None


class ReconcileResponse(BaseModel):
    session_id: str
    status: str


class EventType(str, enum.Enum):
    """Stripe event types the reconciler reacts to.

    Anything Stripe sends that is not listed here parses to ``UNKNOWN`` and is
    acknowledged without touching an order.
    """

    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
    CHECKOUT_SESSION_ASYNC_PAYMENT_SUCCEEDED = "checkout.session.async_payment_succeeded"
    CHECKOUT_SESSION_ASYNC_PAYMENT_FAILED = "checkout.session.async_payment_failed"
    PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
    PAYMENT_INTENT_PAYMENT_FAILED = "payment_intent.payment_failed"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "EventType":
        try:
            return cls(raw)
        except ValueError:
            return cls.UNKNOWN


class EventData(BaseModel):
    object: Dict[str, Any] = Field(default_factory=dict)


class WebhookEvent(BaseModel):
    """Envelope of a verified Stripe event."""

    id: Optional[str] = None
    type: str
    data: EventData = Field(default_factory=EventData)

    @property
    def event_type(self) -> EventType:
        return EventType.parse(self.type)
