"""
Services package initializer.

Re-exports the service classes so callers can import from
`beatmarket.services` instead of deep module paths.
"""

from .messaging import NotificationService, get_notification_service
from .storage.s3 import S3Service, get_storage
from .payments import StripeService, get_payment_gateway
from .checkout import CheckoutService
from .fulfillment import FulfillmentService, FulfillmentSummary
from .refunds import RefundService
from .webhooks import WebhookService
from .access import DownloadAccessService, GuestAccessService, increment_download_counter
from .catalog import AdminStatsService, CatalogService, UploadedFile

__all__ = [
    "NotificationService",
    "get_notification_service",
    "S3Service",
    "get_storage",
    "StripeService",
    "get_payment_gateway",
    "CheckoutService",
    "FulfillmentService",
    "FulfillmentSummary",
    "RefundService",
    "WebhookService",
    "DownloadAccessService",
    "GuestAccessService",
    "increment_download_counter",
    "AdminStatsService",
    "CatalogService",
    "UploadedFile",
]
