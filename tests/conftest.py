import hashlib
import hmac
import json
import time

import pytest
from fastapi.testclient import TestClient

from checkout.config import Settings
from checkout.database import Base, make_engine, make_session_factory
from checkout.main import create_app
from checkout.models import Order, new_order_id
from checkout.stripe_service import StripeGateway

WEBHOOK_SECRET = "whsec_test_secret"
SECRET_KEY = "sk_test_123"


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Build a Stripe-Signature header the way Stripe does."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test_checkout.db'}",
        stripe_secret_key=SECRET_KEY,
        stripe_webhook_secret=WEBHOOK_SECRET,
        public_base_url="http://testserver",
    )


@pytest.fixture
def session_factory(settings):
    engine = make_engine(settings.database_url)
    Base.metadata.create_all(bind=engine)
    yield make_session_factory(engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def gateway(settings):
    return StripeGateway(settings)


@pytest.fixture
def client(settings, gateway, session_factory):
    app = create_app(settings, gateway=gateway, session_factory=session_factory)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def create_order(session_factory):
    def _create(session_id, status="pending", payment_reference=None, order_id=None, amount=2000):
        db = session_factory()
        order = Order(
            id=order_id or new_order_id(),
            customer_name="Ada Lovelace",
            customer_email="ada@example.com",
            amount=amount,
            currency="usd",
            processor_session_id=session_id,
            processor_payment_reference=payment_reference,
            status=status,
        )
        db.add(order)
        db.commit()
        order_id = order.id
        db.close()
        return order_id
    return _create


@pytest.fixture
def load_order(session_factory):
    def _load(session_id):
        db = session_factory()
        order = db.query(Order).filter_by(processor_session_id=session_id).first()
        db.close()
        return order
    return _load


@pytest.fixture
def order_count(session_factory):
    def _count():
        db = session_factory()
        count = db.query(Order).count()
        db.close()
        return count
    return _count


@pytest.fixture
def stripe_session(mocker):
    """Stand-in for a stripe.checkout.Session returned by the SDK."""
    def _session(session_id, payment_status="unpaid", payment_intent=None, url=None):
        return mocker.Mock(
            id=session_id,
            url=url or f"https://checkout.stripe.com/c/pay/{session_id}",
            payment_status=payment_status,
            payment_intent=payment_intent,
        )
    return _session


@pytest.fixture
def post_event(client):
    """Send a signed Stripe event to the webhook endpoint."""
    def _post(event_type, obj, event_id="evt_test", secret=WEBHOOK_SECRET, timestamp=None, body=None):
        payload = json.dumps({
            "id": event_id,
            "object": "event",
            "type": event_type,
            "data": {"object": obj},
        }).encode("utf-8")
        header = sign_payload(payload, secret=secret, timestamp=timestamp)
        return client.post(
            "/webhooks/stripe",
            content=body if body is not None else payload,
            headers={"Stripe-Signature": header, "Content-Type": "application/json"},
        )
    return _post
