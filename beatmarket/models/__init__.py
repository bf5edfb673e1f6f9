"""Import all models for Alembic."""
from .base import TimestampMixin, utcnow
from .enums import (
    UserRole,
    LicenseType,
    OrderStatus,
    FileKind,
)
from .user import User
from .beat import Beat
from .order import Order, generate_order_number
from .download import Download
from .webhook_event import WebhookEvent

__all__ = [
    "TimestampMixin",
    "utcnow",
    "UserRole",
    "LicenseType",
    "OrderStatus",
    "FileKind",
    "User",
    "Beat",
    "Order",
    "generate_order_number",
    "Download",
    "WebhookEvent",
]
