"""
Messaging package initializer.

Provides the email notification service used by fulfillment.
"""

from .notification_service import ConfirmationLine, NotificationService, get_notification_service

__all__ = [
    "ConfirmationLine",
    "NotificationService",
    "get_notification_service",
]
