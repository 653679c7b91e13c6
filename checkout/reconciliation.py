"""Order status transitions driven by Stripe.

Both the webhook endpoint and the manual reconcile endpoint funnel into
:func:`apply_transition`, which only ever sets a status to a value, so
redelivered events and repeated reconcile calls leave the order unchanged.
Once an order is ``paid`` or ``failed`` it stays that way.

A completed Checkout Session only settles the order when its payment status
says the money is collected. Delayed payment methods complete ``unpaid`` and
are resolved later by the ``async_payment_*`` events.
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from checkout.database import commit
from checkout.models import Order, OrderStatus, utcnow
from checkout.orders import find_by_payment_reference, find_by_session, get_order
from checkout.schemas import EventType, WebhookEvent
from checkout.stripe_service import SETTLED_PAYMENT_STATUSES, StripeGateway

logger = logging.getLogger(__name__)

# checkout.session.completed goes through settle_session() instead.
ASYNC_SESSION_EVENTS = {
    EventType.CHECKOUT_SESSION_ASYNC_PAYMENT_SUCCEEDED: OrderStatus.PAID,
    EventType.CHECKOUT_SESSION_ASYNC_PAYMENT_FAILED: OrderStatus.FAILED,
}

PAYMENT_INTENT_EVENTS = {
    EventType.PAYMENT_INTENT_SUCCEEDED: OrderStatus.PAID,
    EventType.PAYMENT_INTENT_PAYMENT_FAILED: OrderStatus.FAILED,
}


def apply_transition(
    order: Order, target: OrderStatus, payment_reference: Optional[str] = None
) -> bool:
    """Move ``order`` to ``target`` and record the payment reference once.

    Returns True when a field changed. Nothing is committed here.
    """
    current = OrderStatus(order.status)
    if current.is_terminal and current is not target:
        logger.warning(
            "Ignoring %s -> %s for order %s; status is final",
            current.value, target.value, order.id,
        )
        return False

    changed = False
    if current is not target:
        order.status = target.value
        changed = True
    if payment_reference and not order.processor_payment_reference:
        order.processor_payment_reference = payment_reference
        changed = True

    if changed:
        order.updated_at = utcnow()
        logger.info(
            "Order %s is now %s (payment reference %s)",
            order.id, order.status, order.processor_payment_reference,
        )
    return changed


def _save(db: Session, order: Order, target: OrderStatus, payment_reference: Optional[str]) -> Order:
    if apply_transition(order, target, payment_reference):
        commit(db)
    return order


def _order_for_payment_intent(db: Session, intent: Dict[str, Any]) -> Optional[Order]:
    # Precedence: payment reference, then session id, then our own order id.
    metadata = intent.get("metadata") or {}

    reference = intent.get("id")
    if reference:
        order = find_by_payment_reference(db, reference)
        if order is not None:
            return order

    session_id = metadata.get("checkout_session_id")
    if session_id:
        order = find_by_session(db, session_id)
        if order is not None:
            return order

    order_id = metadata.get("order_id")
    if order_id:
        return db.get(Order, order_id)
    return None


def settle_session(
    db: Session, order: Order, payment_status: Optional[str], payment_reference: Optional[str]
) -> Order:
    """Mark the order paid if the session's payment is collected, else leave it."""
    if payment_status not in SETTLED_PAYMENT_STATUSES:
        logger.info(
            "Session %s not paid yet (payment_status=%s); order %s stays %s",
            order.processor_session_id, payment_status, order.id, order.status,
        )
        return order
    return _save(db, order, OrderStatus.PAID, payment_reference)


def handle_event(db: Session, event: WebhookEvent) -> Optional[Order]:
    """Apply a verified Stripe event; returns the touched order, if any."""
    event_type = event.event_type
    obj = event.data.object

    if event_type is EventType.UNKNOWN:
        logger.debug("Ignoring Stripe event %s of type %s", event.id, event.type)
        return None

    if event_type is EventType.CHECKOUT_SESSION_COMPLETED or event_type in ASYNC_SESSION_EVENTS:
        session_id = obj.get("id")
        order = find_by_session(db, session_id) if session_id else None
        if order is None:
            logger.warning(
                "No order for checkout session %s (event %s, %s)",
                session_id, event.id, event.type,
            )
            return None
        if event_type is EventType.CHECKOUT_SESSION_COMPLETED:
            return settle_session(db, order, obj.get("payment_status"), obj.get("payment_intent"))
        return _save(db, order, ASYNC_SESSION_EVENTS[event_type], obj.get("payment_intent"))

    order = _order_for_payment_intent(db, obj)
    if order is None:
        logger.warning(
            "No order for payment intent %s (event %s, %s)",
            obj.get("id"), event.id, event.type,
        )
        return None
    return _save(db, order, PAYMENT_INTENT_EVENTS[event_type], obj.get("id"))


def reconcile_session(db: Session, gateway: StripeGateway, session_id: str) -> Order:
    """Pull the session from Stripe and settle the order when it is paid."""
    order = get_order(db, session_id)
    session = gateway.retrieve_session(session_id)
    return settle_session(db, order, session.payment_status, session.payment_intent)
