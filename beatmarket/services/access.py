"""
Download access gates.

Registered buyers download through per-item grants issued at fulfillment,
limited only by the grant's expiry. Guests download through the order's
token, limited by expiry and a fixed download quota.
"""
import logging
import posixpath
import re
from typing import Dict, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from beatmarket.app.config import settings
from beatmarket.app.exceptions import (
    GoneError,
    NotFoundError,
    PermissionDeniedError,
    QuotaExceededError,
    ValidationFailedError,
)
from beatmarket.db.base import SessionLocal
from beatmarket.models.base import utcnow
from beatmarket.models.beat import Beat
from beatmarket.models.download import Download
from beatmarket.models.enums import FileKind
from beatmarket.models.order import Order
from beatmarket.models.user import User
from beatmarket.repositories.beat_repo import BeatRepository
from beatmarket.repositories.download_repo import DownloadRepository
from beatmarket.repositories.order_repo import OrderRepository
from beatmarket.schemas.download import (
    DownloadFiles,
    GuestDownloadCountResponse,
    GuestDownloadItem,
    GuestDownloadResponse,
    GuestOrderSummary,
)
from beatmarket.services.storage.s3 import S3Service, contract_key

logger = logging.getLogger(__name__)


def parse_file_kind(file_type: str) -> FileKind:
    try:
        return FileKind(file_type)
    except ValueError:
        allowed = ", ".join(kind.value for kind in FileKind)
        raise ValidationFailedError(f"Unknown file type '{file_type}'. Expected one of: {allowed}")


def download_filename(title: Optional[str], license_type, kind: str, key: str) -> str:
    """Human friendly attachment name, e.g. ``Night_Drive_standard_wav.wav``."""
    ext = posixpath.splitext(key)[1] or ''
    stem = re.sub(r'[^A-Za-z0-9]+', '_', title or 'beat').strip('_') or 'beat'
    license_value = getattr(license_type, 'value', license_type)
    return f"{stem}_{license_value}_{kind}{ext}"


def increment_download_counter(download_id: UUID) -> None:
    """
    Count one download on a grant.

    Runs as a background task after the response is sent, on its own
    session. At most once: failures are logged and never retried, and the
    counter never gates access.
    """
    db = SessionLocal()
    try:
        DownloadRepository(db).increment_count(download_id)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning(f"Could not count download {download_id}: {exc}")
    finally:
        db.close()


class DownloadAccessService:
    """Download gate for registered buyers."""

    def __init__(self, db: Session, storage: S3Service):
        self.db = db
        self.storage = storage
        self.downloads = DownloadRepository(db)

    def get_grant(self, download_id: UUID, user: User) -> Download:
        download = self.downloads.get(download_id)
        if download is None:
            raise NotFoundError("Download not found")
        if download.user_id != user.id:
            raise PermissionDeniedError("This download belongs to another account")
        return download

    def resolve_url(self, download_id: UUID, file_type: str, user: User) -> str:
        """
        Presigned attachment URL for one file of a grant.

        Raises:
            ValidationFailedError: Unknown file type (400)
            NotFoundError: No such grant, or the file is not part of it (404)
            PermissionDeniedError: Grant owned by someone else (403)
            GoneError: Grant expired or revoked (410)
        """
        kind = parse_file_kind(file_type)
        download = self.get_grant(download_id, user)
        if download.is_expired():
            raise GoneError("This download has expired")

        key = (download.files or {}).get(kind.value)
        if not key:
            raise NotFoundError(f"No {kind.value} file is included with this license")

        title = download.beat.title if download.beat is not None else None
        return self.storage.generate_presigned_download_url(
            key,
            filename=download_filename(title, download.license_type, kind.value, key),
        )


class GuestAccessService:
    """Token based download gate for guest orders."""

    def __init__(self, db: Session, storage: S3Service):
        self.db = db
        self.storage = storage
        self.orders = OrderRepository(db)
        self.beats = BeatRepository(db)
        self.max_downloads = settings.GUEST_MAX_DOWNLOADS

    def _check_access(self, order: Optional[Order]) -> Order:
        if order is None:
            raise NotFoundError("Download link not found")
        if not order.is_guest_order:
            raise PermissionDeniedError("This order is not a guest order")
        if order.download_expiry is None or utcnow() >= order.download_expiry:
            raise GoneError("Download link has expired")
        if order.download_count >= self.max_downloads:
            raise QuotaExceededError(f"Download limit of {self.max_downloads} reached")
        return order

    def _item_files(self, order: Order, item: Dict, beat: Optional[Beat]) -> DownloadFiles:
        files = {}
        if beat is not None:
            for kind, key in beat.files_for_license(item['license_type']).items():
                files[kind] = self.storage.generate_presigned_download_url(
                    key, filename=download_filename(item['beat_title'], item['license_type'], kind, key)
                )
        contract = contract_key(order.order_number, item['beat_id'])
        files[FileKind.contract.value] = self.storage.generate_presigned_download_url(
            contract,
            filename=download_filename(item['beat_title'], item['license_type'], FileKind.contract.value, contract),
        )
        return DownloadFiles(**files)

    def get_order_downloads(self, token: str) -> GuestDownloadResponse:
        """
        Order summary plus freshly resolved file URLs for every item.

        Files are resolved from the beat at request time and filtered by the
        purchased license features.
        """
        order = self._check_access(self.orders.get_by_download_token(token))

        items = []
        for item in order.items or []:
            beat = self.beats.get(UUID(item['beat_id']))
            if beat is None:
                logger.warning(f"Guest order {order.order_number}: beat {item['beat_id']} no longer exists")
            items.append(GuestDownloadItem(
                beat_id=item['beat_id'],
                beat_title=item['beat_title'],
                license_type=item['license_type'],
                price=item['price'],
                cover_url=self.storage.public_url(beat.cover_key) if beat is not None else None,
                files=self._item_files(order, item, beat),
            ))

        license_contract = None
        if order.license_contract:
            license_contract = self.storage.generate_presigned_download_url(order.license_contract)

        return GuestDownloadResponse(
            order=GuestOrderSummary(
                order_number=order.order_number,
                total_amount=order.total_amount,
                delivery_email=order.delivery_email,
                created_at=order.created_at,
                download_count=order.download_count,
                max_downloads=self.max_downloads,
                expires_at=order.download_expiry,
                license_contract=license_contract,
            ),
            items=items,
        )

    def register_download(self, token: str) -> GuestDownloadCountResponse:
        """
        Count one guest download, atomically guarded by quota and expiry.

        On a rejected increment the order is re-read only to report why.
        """
        count = self.orders.increment_guest_downloads(token, self.max_downloads, utcnow())
        if count is None:
            self._check_access(self.orders.get_by_download_token(token))
            # The guard failed but a fresh read passes: lost a race for the last slot
            raise QuotaExceededError(f"Download limit of {self.max_downloads} reached")

        logger.info(f"Guest download {count}/{self.max_downloads} for token {token[:8]}...")
        return GuestDownloadCountResponse(download_count=count, max_downloads=self.max_downloads)
