"""Order repository extending base repository."""
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session

from beatmarket.models.order import Order
from beatmarket.models.enums import OrderStatus
from beatmarket.repositories.base import BaseRepository


class OrderRepository(BaseRepository[Order]):
    """Repository for order database operations."""

    def __init__(self, db: Session):
        super().__init__(Order, db)

    def get_by_session_id(self, session_id: str) -> Optional[Order]:
        return self.get_by_field('stripe_session_id', session_id)

    def get_by_payment_id(self, payment_id: str) -> Optional[Order]:
        return self.get_by_field('stripe_payment_id', payment_id)

    def get_by_download_token(self, token: str) -> Optional[Order]:
        return self.get_by_field('download_token', token)

    def list_for_user(self, user_id: UUID) -> List[Order]:
        return (
            self.db.query(Order)
            .filter(Order.user_id == user_id)
            .order_by(Order.created_at.desc())
            .all()
        )

    def list_admin(
        self,
        skip: int = 0,
        limit: int = 10,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Order], int]:
        """List all orders, filtered by status and order number / email search."""
        query = self.db.query(Order)
        if status and status != 'all':
            query = query.filter(Order.status == OrderStatus(status))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(Order.order_number.ilike(pattern), Order.delivery_email.ilike(pattern))
            )
        return self._paginate(query, skip, limit)

    def increment_guest_downloads(self, token: str, max_downloads: int, now: datetime) -> Optional[int]:
        """
        Check-and-increment the guest download counter in one statement.

        The quota and expiry guards live in the UPDATE's WHERE clause, so two
        concurrent requests cannot both pass a stale read. Returns the new
        count, or None when no row satisfied the guard.
        """
        result = self.db.execute(
            update(Order)
            .where(
                Order.download_token == token,
                Order.is_guest_order.is_(True),
                Order.download_count < max_downloads,
                Order.download_expiry > now,
            )
            .values(download_count=Order.download_count + 1)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        if result.rowcount == 0:
            return None

        count = self.db.query(Order.download_count).filter(Order.download_token == token).scalar()
        return count

    def revenue(self, since: Optional[datetime] = None) -> int:
        query = self.db.query(func.coalesce(func.sum(Order.total_amount), 0)).filter(
            Order.status == OrderStatus.completed
        )
        if since is not None:
            query = query.filter(Order.created_at >= since)
        return int(query.scalar() or 0)
