"""Download grant and guest download schemas."""
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from uuid import UUID
from typing import Optional, List

from beatmarket.models.enums import LicenseType


class DownloadFiles(BaseModel):
    mp3: Optional[str] = None
    wav: Optional[str] = None
    stems: Optional[str] = None
    contract: Optional[str] = None


class DownloadResponse(BaseModel):
    """A registered buyer's download grant. Files lists which kinds are available."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_id: UUID
    beat_id: Optional[UUID] = None
    beat_title: Optional[str] = None
    license_type: LicenseType
    download_count: int
    expires_at: datetime
    is_expired: bool
    available_files: List[str]
    created_at: datetime


class DownloadListResponse(BaseModel):
    items: List[DownloadResponse]


class DownloadUrlResponse(BaseModel):
    url: str


class GuestOrderSummary(BaseModel):
    order_number: str
    total_amount: int
    delivery_email: str
    created_at: datetime
    download_count: int
    max_downloads: int
    expires_at: Optional[datetime] = None
    license_contract: Optional[str] = None


class GuestDownloadItem(BaseModel):
    beat_id: UUID
    beat_title: str
    license_type: LicenseType
    price: int
    cover_url: Optional[str] = None
    files: DownloadFiles


class GuestDownloadResponse(BaseModel):
    order: GuestOrderSummary
    items: List[GuestDownloadItem]


class GuestDownloadCountResponse(BaseModel):
    download_count: int
    max_downloads: int
