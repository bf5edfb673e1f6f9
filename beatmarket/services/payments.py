"""Stripe integration: checkout sessions and webhook verification."""
import logging
from typing import Any, Dict, List, Mapping, Optional

import stripe

from beatmarket.app.config import settings
from beatmarket.app.exceptions import WebhookSignatureError

logger = logging.getLogger(__name__)

stripe.api_key = settings.STRIPE_SECRET_KEY


class PaymentGatewayError(Exception):
    """Stripe rejected or failed a request."""
    pass


class StripeService:
    """Narrow wrapper around the Stripe SDK calls the store needs."""

    def __init__(self, webhook_secret: str = None, currency: str = None):
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET
        self.currency = currency or settings.STRIPE_CURRENCY

    def create_checkout_session(
        self,
        line_items: List[Dict[str, Any]],
        customer_email: Optional[str],
        metadata: Mapping[str, str],
        locale: str,
        success_url: str,
        cancel_url: str,
    ) -> Dict[str, str]:
        """
        Open a Stripe Checkout session.

        Args:
            line_items: ``[{"name", "description", "amount"}]``, amounts in cents
            customer_email: Prefilled buyer email
            metadata: Purchase intent, string values only
            locale: Checkout page language

        Returns:
            ``{"id": session_id, "url": redirect_url}``
        """
        try:
            session = stripe.checkout.Session.create(
                mode='payment',
                payment_method_types=['card'],
                line_items=[
                    {
                        'price_data': {
                            'currency': self.currency,
                            'product_data': {
                                'name': item['name'],
                                'description': item['description'],
                            },
                            'unit_amount': item['amount'],
                        },
                        'quantity': 1,
                    }
                    for item in line_items
                ],
                customer_email=customer_email,
                metadata=dict(metadata),
                locale=locale,
                success_url=success_url,
                cancel_url=cancel_url,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout session error: {e}")
            raise PaymentGatewayError(f"Failed to create checkout session: {e.user_message or str(e)}")

        logger.info(f"Created Stripe checkout session {session.id}")
        return {'id': session.id, 'url': session.url}

    def verify_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify a webhook delivery and return the decoded event.

        The signature is checked against the raw body before the body is
        parsed.

        Raises:
            WebhookSignatureError: Missing or invalid signature
        """
        if not signature:
            raise WebhookSignatureError("Missing Stripe-Signature header")

        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                self.webhook_secret,
                tolerance=settings.STRIPE_WEBHOOK_TOLERANCE_SECS,
            )
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Webhook signature verification failed: {e}")
            raise WebhookSignatureError()
        except ValueError as e:
            raise WebhookSignatureError(f"Webhook body is not valid JSON: {e}")

        return event.to_dict()


def get_payment_gateway() -> StripeService:
    return StripeService()
