"""Refund handling: mark the order refunded and revoke its download grants."""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from beatmarket.models.base import utcnow
from beatmarket.models.enums import OrderStatus
from beatmarket.models.order import Order
from beatmarket.repositories.download_repo import DownloadRepository
from beatmarket.repositories.order_repo import OrderRepository

logger = logging.getLogger(__name__)


class RefundService:

    def __init__(self, db: Session):
        self.db = db
        self.orders = OrderRepository(db)
        self.downloads = DownloadRepository(db)

    def handle_refund(self, charge: Dict[str, Any]) -> Optional[Order]:
        """
        Apply a ``charge.refunded`` event.

        Grants are revoked by moving their expiry to now, never deleted.
        Guest links stop working the same way. Unknown payments are logged
        and ignored.

        Returns:
            The refunded order, or None if no order matches the charge
        """
        payment_intent = charge.get('payment_intent')
        order = self.orders.get_by_payment_id(payment_intent) if payment_intent else None
        if order is None:
            logger.warning(f"Refund for unknown payment {payment_intent} (charge {charge.get('id')}), ignoring")
            return None

        now = utcnow()
        order.status = OrderStatus.refunded
        if order.is_guest_order:
            order.download_expiry = now
        self.db.commit()

        revoked = self.downloads.expire_for_order(order.id, now)
        self.db.refresh(order)
        logger.info(f"Order {order.order_number} refunded, {revoked} download grants revoked")
        return order
