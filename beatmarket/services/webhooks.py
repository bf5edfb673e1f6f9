"""
Stripe Webhook Dispatch
=======================

Routes verified Stripe events to the service that owns them and keeps a
``WebhookEvent`` log of every delivery.

Handled event types:

- ``checkout.session.completed``: order fulfillment
- ``charge.refunded``: refund and download revocation
- ``payment_intent.succeeded``: logged only

An event id that was already processed is acknowledged without running its
handler again. Events whose handler raised stay unprocessed, so Stripe's
retry runs them again; the order-level session id guard keeps that safe.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from beatmarket.models.base import utcnow
from beatmarket.models.webhook_event import WebhookEvent
from beatmarket.repositories.base import BaseRepository
from beatmarket.services.fulfillment import FulfillmentService
from beatmarket.services.messaging.notification_service import NotificationService
from beatmarket.services.refunds import RefundService
from beatmarket.services.storage.s3 import S3Service

logger = logging.getLogger(__name__)

PROVIDER = "stripe"

CHECKOUT_COMPLETED = "checkout.session.completed"
CHARGE_REFUNDED = "charge.refunded"
PAYMENT_SUCCEEDED = "payment_intent.succeeded"


class WebhookService:

    def __init__(self, db: Session, storage: S3Service, notifications: NotificationService):
        self.db = db
        self.events = BaseRepository(WebhookEvent, db)
        self.fulfillment = FulfillmentService(db, storage, notifications)
        self.refunds = RefundService(db)

    async def dispatch(self, event: Dict[str, Any]) -> Optional[Any]:
        """
        Handle one verified event.

        Returns:
            The handler's result (a FulfillmentSummary, a refunded Order),
            or None for duplicates and ignored event types
        """
        event_id = event.get('id')
        event_type = event.get('type', 'unknown')
        data_object = (event.get('data') or {}).get('object') or {}

        record = self._record(event_id, event_type, event) if event_id else None
        if record is not None and record.processed:
            logger.info(f"Webhook {event_id} ({event_type}) already processed, skipping")
            return None

        if event_type == CHECKOUT_COMPLETED:
            result = await self.fulfillment.fulfill(data_object)
        elif event_type == CHARGE_REFUNDED:
            result = self.refunds.handle_refund(data_object)
        elif event_type == PAYMENT_SUCCEEDED:
            logger.info(f"Payment {data_object.get('id')} succeeded")
            result = None
        else:
            logger.debug(f"Ignoring webhook event type {event_type}")
            result = None

        if record is not None:
            record.processed = True
            record.processed_at = utcnow()
            self.db.commit()
        return result

    def _record(self, event_id: str, event_type: str, payload: Dict[str, Any]) -> WebhookEvent:
        existing = self.events.get_by_field('event_id', event_id)
        if existing is not None:
            return existing
        try:
            return self.events.create({
                'provider': PROVIDER,
                'event_id': event_id,
                'event_type': event_type,
                'payload': payload,
                'processed': False,
                'received_at': utcnow(),
            })
        except IntegrityError:
            self.db.rollback()
            return self.events.get_by_field('event_id', event_id)
