"""Download grant model."""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, JSON, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid

from beatmarket.db.base import Base
from .base import TimestampMixin, utcnow
from .enums import LicenseType


class Download(Base, TimestampMixin):
    """
    Per-item download grant for a registered buyer.

    ``files`` is resolved once at issuance from the beat files the license
    tier includes, plus the generated contract.
    """

    __tablename__ = 'downloads'
    __table_args__ = (
        UniqueConstraint('order_id', 'beat_id', name='uq_downloads_order_beat'),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    order_id = Column(UUID(as_uuid=True), ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    beat_id = Column(UUID(as_uuid=True), ForeignKey('beats.id', ondelete='SET NULL'), nullable=True, index=True)
    license_type = Column(SQLEnum(LicenseType, name="licensetype"), nullable=False)

    # Informational only, never enforced
    download_count = Column(Integer, default=0, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    files = Column(JSON, default=dict, nullable=False)

    order = relationship('Order', back_populates='downloads')
    user = relationship('User', back_populates='downloads')
    beat = relationship('Beat')

    def is_expired(self) -> bool:
        return utcnow() >= self.expires_at

    def __repr__(self) -> str:
        return f'<Download(id={self.id}, order_id={self.order_id}, beat_id={self.beat_id})>'
