"""Download endpoints for registered buyers and guests."""
from fastapi import APIRouter, BackgroundTasks, Depends, Response
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from beatmarket.app.config import settings
from beatmarket.core.rate_limiter import rate_limit
from beatmarket.db.base import get_db
from beatmarket.models.enums import AUDIO_FILE_KINDS, FileKind
from beatmarket.models.user import User
from beatmarket.repositories.download_repo import DownloadRepository
from beatmarket.schemas.download import (
    DownloadListResponse,
    DownloadResponse,
    DownloadUrlResponse,
    GuestDownloadCountResponse,
    GuestDownloadResponse,
)
from beatmarket.services.access import DownloadAccessService, GuestAccessService, increment_download_counter
from beatmarket.services.storage.s3 import S3Service, get_storage
from beatmarket.api.deps import get_current_user

router = APIRouter()

guest_rate_limit = rate_limit(
    "guest_download",
    settings.GUEST_DOWNLOAD_RATE_LIMIT,
    settings.GUEST_DOWNLOAD_RATE_WINDOW_SECS,
)

_FILE_ORDER = [kind.value for kind in AUDIO_FILE_KINDS] + [FileKind.contract.value]


@router.get("", response_model=DownloadListResponse)
async def list_my_downloads(
    order_id: Optional[UUID] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List the caller's download grants, newest first, optionally for one order."""
    downloads = DownloadRepository(db).list_for_user(current_user.id, order_id=order_id)
    return DownloadListResponse(items=[
        DownloadResponse(
            id=download.id,
            order_id=download.order_id,
            beat_id=download.beat_id,
            beat_title=download.beat.title if download.beat is not None else None,
            license_type=download.license_type,
            download_count=download.download_count,
            expires_at=download.expires_at,
            is_expired=download.is_expired(),
            available_files=[kind for kind in _FILE_ORDER if (download.files or {}).get(kind)],
            created_at=download.created_at,
        )
        for download in downloads
    ])


@router.get(
    "/guest/{token}",
    response_model=GuestDownloadResponse,
    dependencies=[Depends(guest_rate_limit)],
)
async def get_guest_downloads(
    token: str,
    db: Session = Depends(get_db),
    storage: S3Service = Depends(get_storage),
):
    """
    Guest download page data.

    - 404 unknown token, 403 not a guest order
    - 410 link expired, 429 download limit reached
    """
    return GuestAccessService(db, storage).get_order_downloads(token)


@router.post(
    "/guest/{token}",
    response_model=GuestDownloadCountResponse,
    dependencies=[Depends(guest_rate_limit)],
)
async def register_guest_download(
    token: str,
    db: Session = Depends(get_db),
    storage: S3Service = Depends(get_storage),
):
    """Count one guest download. The quota and expiry check is atomic with the increment."""
    return GuestAccessService(db, storage).register_download(token)


@router.get("/{download_id}/{file_type}", response_model=DownloadUrlResponse)
async def get_download_url(
    download_id: UUID,
    file_type: str,
    response: Response,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: S3Service = Depends(get_storage),
):
    """
    Short-lived attachment URL for one file of a grant.

    - file_type: mp3, wav, stems or contract
    - 403 not your grant, 410 expired, 404 file not included
    """
    url = DownloadAccessService(db, storage).resolve_url(download_id, file_type, current_user)
    background_tasks.add_task(increment_download_counter, download_id)
    response.headers["Cache-Control"] = f"private, max-age={settings.DOWNLOAD_URL_TTL_SECONDS}"
    return DownloadUrlResponse(url=url)
