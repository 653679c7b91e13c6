import logging
from pathlib import Path

import pydantic
from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from checkout.config import Settings
from checkout.database import get_db
from checkout.orders import get_order, start_checkout
from checkout.reconciliation import handle_event, reconcile_session
from checkout.schemas import (
    CheckoutRequest,
    CheckoutResponse,
    OrderStatusResponse,
    ReconcileResponse,
    WebhookEvent,
)
from checkout.stripe_service import StripeGateway

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"

router = APIRouter()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_gateway(request: Request) -> StripeGateway:
    return request.app.state.gateway


@router.get("/")
def checkout_form():
    return FileResponse(STATIC_DIR / "index.html")


@router.get("/success")
def success_page():
    return FileResponse(STATIC_DIR / "success.html")


@router.get("/cancel")
def cancel_page():
    return FileResponse(STATIC_DIR / "cancel.html")


@router.get("/health")
def health():
    return {"ok": True}


@router.post("/checkout", response_model=CheckoutResponse)
def create_checkout(
    request: CheckoutRequest,
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    order, session = start_checkout(db, gateway, settings, request)
    return {"redirect_url": session.url, "session_id": order.processor_session_id}


@router.post("/webhooks/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(None),
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_gateway),
):
    payload = await request.body()
    text = gateway.verify_webhook(payload, stripe_signature)

    try:
        event = WebhookEvent.model_validate_json(text)
    except pydantic.ValidationError:
        logger.warning("Verified webhook body is not a Stripe event")
        raise HTTPException(status_code=400, detail="Invalid payload")

    handle_event(db, event)
    return {"received": True}


@router.get("/orders/{session_id}", response_model=OrderStatusResponse)
def order_status(session_id: str, db: Session = Depends(get_db)):
    order = get_order(db, session_id)
    return {
        "session_id": order.processor_session_id,
        "status": order.status,
        "payment_reference": order.processor_payment_reference,
    }


@router.post("/orders/{session_id}/reconcile", response_model=ReconcileResponse)
def reconcile_order(
    session_id: str,
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_gateway),
):
    order = reconcile_session(db, gateway, session_id)
    return {"session_id": order.processor_session_id, "status": order.status}
