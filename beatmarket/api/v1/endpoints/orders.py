"""Checkout, Stripe webhook and buyer order endpoints."""
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
import logging

from beatmarket.db.base import get_db
from beatmarket.models.order import Order
from beatmarket.models.user import User
from beatmarket.app.exceptions import BeatMarketError
from beatmarket.repositories.order_repo import OrderRepository
from beatmarket.schemas.checkout import CheckoutRequest, CheckoutResponse
from beatmarket.schemas.order import OrderListResponse, OrderResponse
from beatmarket.services.checkout import CheckoutService
from beatmarket.services.messaging.notification_service import NotificationService, get_notification_service
from beatmarket.services.payments import PaymentGatewayError, StripeService, get_payment_gateway
from beatmarket.services.storage.s3 import S3Service, get_storage
from beatmarket.services.webhooks import WebhookService
from beatmarket.api.deps import get_current_user, get_optional_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/checkout", response_model=CheckoutResponse)
def create_checkout(
    request: CheckoutRequest,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
    payments: StripeService = Depends(get_payment_gateway),
):
    """
    Open a Stripe Checkout session for the cart.

    - Logged-in buyers check out as themselves; otherwise guest_email is required
    - Prices are taken from the catalog, the client price is ignored
    - No order exists until the payment webhook arrives
    """
    service = CheckoutService(db, payments)
    try:
        return service.create_checkout(
            request.items,
            user=current_user,
            guest_email=request.guest_email,
            locale=request.locale,
        )
    except PaymentGatewayError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    db: Session = Depends(get_db),
    payments: StripeService = Depends(get_payment_gateway),
    storage: S3Service = Depends(get_storage),
    notifications: NotificationService = Depends(get_notification_service),
):
    """
    Stripe webhook receiver.

    The signature is verified over the raw body before anything is parsed.
    Any unexpected failure returns 500 so Stripe retries the delivery.
    """
    payload = await request.body()
    event = payments.verify_webhook(payload, stripe_signature)

    service = WebhookService(db, storage, notifications)
    try:
        await service.dispatch(event)
    except BeatMarketError:
        raise
    except Exception as e:
        db.rollback()
        logger.exception(f"Webhook {event.get('id')} ({event.get('type')}) failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Webhook processing failed"},
        )

    return {"received": True}


@router.get("", response_model=OrderListResponse)
async def list_my_orders(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    orders = OrderRepository(db).list_for_user(current_user.id)
    return OrderListResponse(
        items=[OrderResponse.model_validate(order) for order in orders],
        total=len(orders),
    )


@router.get("/{order_id}", response_model=OrderResponse)
async def get_my_order(
    order_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    order: Optional[Order] = OrderRepository(db).get(order_id)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    if order.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to view this order")
    return order
