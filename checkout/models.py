import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from checkout.database import Base


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not OrderStatus.PENDING


def new_order_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(Base):
    __tablename__ = "orders"

    id = Column(String, primary_key=True, default=new_order_id)
    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=False)
    amount = Column(Integer, nullable=False)                     # smallest currency unit
    currency = Column(String(3), nullable=False)
    processor_session_id = Column(String, unique=True, index=True, nullable=False)   # Stripe Checkout Session ID
    processor_payment_reference = Column(String, index=True)                         # Stripe PaymentIntent ID
    status = Column(String, nullable=False, default=OrderStatus.PENDING.value)       # pending | paid | failed
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
