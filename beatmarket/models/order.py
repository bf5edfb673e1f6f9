"""Order model."""
from datetime import datetime
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, JSON, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import secrets
import string
import uuid

from beatmarket.db.base import Base
from .base import TimestampMixin, utcnow
from .enums import OrderStatus

_ORDER_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def generate_order_number(now: datetime = None) -> str:
    """Human readable order number, e.g. ORD-20260118-K3F9QZ."""
    now = now or utcnow()
    suffix = ''.join(secrets.choice(_ORDER_SUFFIX_ALPHABET) for _ in range(6))
    return f"ORD-{now:%Y%m%d}-{suffix}"


class Order(Base, TimestampMixin):
    """
    Immutable record of one paid checkout session.

    ``items`` is a snapshot: ``[{"beat_id", "beat_title", "license_type", "price"}]``
    and ``total_amount`` is their summed price in cents. Guest orders carry a
    download token, counter and expiry; user orders rely on Download rows.
    """

    __tablename__ = 'orders'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    order_number = Column(String(32), unique=True, nullable=False, index=True, default=generate_order_number)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True)

    items = Column(JSON, default=list, nullable=False)
    total_amount = Column(Integer, nullable=False)

    # Stripe details
    stripe_payment_id = Column(String(255), nullable=True, index=True)
    stripe_session_id = Column(String(255), unique=True, nullable=False, index=True)

    status = Column(SQLEnum(OrderStatus, name="orderstatus"), default=OrderStatus.pending, nullable=False, index=True)
    license_contract = Column(String(512), nullable=True)
    delivery_email = Column(String(255), nullable=False, index=True)
    locale = Column(String(8), nullable=False, default='en')

    # Guest checkout
    is_guest_order = Column(Boolean, default=False, nullable=False)
    guest_email = Column(String(255), nullable=True)
    download_token = Column(String(64), unique=True, nullable=True, index=True)
    download_count = Column(Integer, default=0, nullable=False)
    download_expiry = Column(DateTime, nullable=True)

    user = relationship('User', back_populates='orders')
    downloads = relationship('Download', back_populates='order')

    def __repr__(self) -> str:
        return f'<Order(id={self.id}, number={self.order_number}, status={self.status})>'
