from sqlalchemy import Column, String, DateTime, JSON, Boolean
from sqlalchemy.dialects.postgresql import UUID
import uuid

from beatmarket.db.base import Base
from .base import TimestampMixin, utcnow


class WebhookEvent(Base, TimestampMixin):
    """Webhook Event model to log incoming webhook events."""
    __tablename__ = 'webhook_events'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    provider = Column(String(100), nullable=False, index=True)
    event_id = Column(String(255), nullable=False, unique=True, index=True)
    event_type = Column(String(100), nullable=False, index=True)

    payload = Column(JSON, nullable=False)

    processed = Column(Boolean, default=False, nullable=False, index=True)
    processed_at = Column(DateTime, nullable=True)
    received_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f'<WebhookEvent(id={self.id}, provider={self.provider}, event_type={self.event_type}, processed={self.processed})>'
