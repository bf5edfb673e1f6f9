"""Download grant repository."""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session, joinedload

from beatmarket.models.download import Download
from beatmarket.models.enums import LicenseType, OrderStatus
from beatmarket.models.order import Order
from beatmarket.repositories.base import BaseRepository


class DownloadRepository(BaseRepository[Download]):

    def __init__(self, db: Session):
        super().__init__(Download, db)

    def list_for_user(self, user_id: UUID, order_id: Optional[UUID] = None) -> List[Download]:
        query = (
            self.db.query(Download)
            .options(joinedload(Download.beat))
            .filter(Download.user_id == user_id)
        )
        if order_id is not None:
            query = query.filter(Download.order_id == order_id)
        return query.order_by(Download.created_at.desc()).all()

    def expire_for_order(self, order_id: UUID, now: datetime) -> int:
        """Revoke every grant of an order by moving its expiry to now."""
        result = self.db.execute(
            update(Download)
            .where(Download.order_id == order_id)
            .values(expires_at=now)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount

    def increment_count(self, download_id: UUID) -> None:
        self.db.execute(
            update(Download)
            .where(Download.id == download_id)
            .values(download_count=Download.download_count + 1)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

    def has_exclusive_sale(self, beat_id: UUID) -> bool:
        """True when a non-refunded order granted the beat under an exclusive license."""
        return self.db.query(
            self.db.query(Download)
            .join(Order, Download.order_id == Order.id)
            .filter(
                Download.beat_id == beat_id,
                Download.license_type == LicenseType.exclusive,
                Order.status == OrderStatus.completed,
            )
            .exists()
        ).scalar()
