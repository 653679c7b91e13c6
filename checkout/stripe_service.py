"""Stripe SDK wrapper for checkout sessions and webhook verification."""
import logging
from typing import Optional

import stripe
from pydantic import BaseModel

from checkout.config import Settings
from checkout.errors import (
    ConfigurationError,
    ProcessorRequestError,
    SignatureVerificationError,
)

logger = logging.getLogger(__name__)

SESSION_PLACEHOLDER = "{CHECKOUT_SESSION_ID}"

# Checkout Session payment_status values that mean the money is collected.
SETTLED_PAYMENT_STATUSES = {"paid", "no_payment_required"}


class ProcessorSession(BaseModel):
    id: str
    url: Optional[str] = None
    payment_status: Optional[str] = None
    payment_intent: Optional[str] = None


def _reference_id(value) -> Optional[str]:
    # payment_intent is an ID string unless the caller asked Stripe to expand it.
    if value is None or isinstance(value, str):
        return value
    return getattr(value, "id", None)


def _to_session(session) -> ProcessorSession:
    return ProcessorSession(
        id=session.id,
        url=getattr(session, "url", None),
        payment_status=getattr(session, "payment_status", None),
        payment_intent=_reference_id(getattr(session, "payment_intent", None)),
    )


class StripeGateway:
    """Explicitly constructed Stripe client; the API key is passed per call."""

    def __init__(self, settings: Settings):
        self._secret_key = settings.stripe_secret_key
        self._webhook_secret = settings.stripe_webhook_secret
        self._tolerance = settings.stripe_webhook_tolerance
        self._base_url = settings.public_base_url.rstrip("/")
        self._product_name = settings.product_name

    def _api_key(self) -> str:
        if not self._secret_key:
            logger.error("STRIPE_SECRET_KEY is not set; cannot call Stripe")
            raise ConfigurationError()
        return self._secret_key

    def create_checkout_session(
        self, order_id: str, customer_email: str, amount: int, currency: str
    ) -> ProcessorSession:
        try:
            session = stripe.checkout.Session.create(
                mode="payment",
                line_items=[{
                    "price_data": {
                        "currency": currency,
                        "unit_amount": amount,
                        "product_data": {"name": self._product_name},
                    },
                    "quantity": 1,
                }],
                customer_email=customer_email,
                client_reference_id=order_id,
                metadata={"order_id": order_id},
                payment_intent_data={"metadata": {"order_id": order_id}},
                success_url=f"{self._base_url}/success?session_id={SESSION_PLACEHOLDER}",
                cancel_url=f"{self._base_url}/cancel?session_id={SESSION_PLACEHOLDER}",
                api_key=self._api_key(),
                idempotency_key=order_id,
            )
        except stripe.StripeError as exc:
            logger.error("Stripe rejected checkout session for order %s: %s", order_id, exc)
            raise ProcessorRequestError(getattr(exc, "user_message", None)) from exc

        return _to_session(session)

    def retrieve_session(self, session_id: str) -> ProcessorSession:
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=self._api_key())
        except stripe.StripeError as exc:
            logger.error("Stripe session lookup failed for %s: %s", session_id, exc)
            raise ProcessorRequestError(getattr(exc, "user_message", None)) from exc

        return _to_session(session)

    def verify_webhook(self, payload: bytes, sig_header: Optional[str]) -> str:
        """Check the Stripe-Signature header against the raw body.

        Returns the body decoded as text; nothing may be parsed before this.
        """
        if not self._webhook_secret:
            logger.error("STRIPE_WEBHOOK_SECRET is not set; refusing webhook")
            raise ConfigurationError()
        if not sig_header:
            logger.warning("Webhook received without Stripe-Signature header")
            raise SignatureVerificationError()

        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SignatureVerificationError("Invalid payload") from exc

        try:
            stripe.WebhookSignature.verify_header(
                text, sig_header, self._webhook_secret, tolerance=self._tolerance
            )
        except stripe.SignatureVerificationError as exc:
            logger.warning("Webhook signature verification failed: %s", exc)
            raise SignatureVerificationError() from exc

        return text
