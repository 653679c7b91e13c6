import logging

from sqlalchemy.orm import Session

from checkout.config import Settings
from checkout.database import commit
from checkout.errors import NotFoundError, ValidationError
from checkout.models import Order, OrderStatus, new_order_id
from checkout.schemas import CheckoutRequest
from checkout.stripe_service import ProcessorSession, StripeGateway

logger = logging.getLogger(__name__)


def start_checkout(
    db: Session, gateway: StripeGateway, settings: Settings, request: CheckoutRequest
) -> tuple[Order, ProcessorSession]:
    """Open a hosted checkout session and record the pending order.

    The order row is written only after Stripe has confirmed the session, so
    a processor failure leaves nothing behind.
    """
    if not request.customer_name.strip():
        raise ValidationError("customer_name must not be blank")
    if request.amount <= 0:
        raise ValidationError("amount must be a positive integer")

    currency = (request.currency or settings.currency).lower()
    order_id = new_order_id()

    session = gateway.create_checkout_session(
        order_id=order_id,
        customer_email=request.customer_email,
        amount=request.amount,
        currency=currency,
    )

    order = Order(
        id=order_id,
        customer_name=request.customer_name,
        customer_email=request.customer_email,
        amount=request.amount,
        currency=currency,
        processor_session_id=session.id,
        status=OrderStatus.PENDING.value,
    )
    db.add(order)
    commit(db)

    logger.info("Created order %s for checkout session %s", order.id, session.id)
    return order, session


def find_by_session(db: Session, session_id: str):
    return db.query(Order).filter_by(processor_session_id=session_id).first()


def find_by_payment_reference(db: Session, payment_reference: str):
    return db.query(Order).filter_by(processor_payment_reference=payment_reference).first()


def get_order(db: Session, session_id: str) -> Order:
    order = find_by_session(db, session_id)
    if order is None:
        raise NotFoundError()
    return order
