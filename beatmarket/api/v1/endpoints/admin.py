"""Admin back-office endpoints: catalog management, orders and stats."""
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from pydantic import ValidationError
from sqlalchemy.orm import Session
from typing import Dict, Optional
from uuid import UUID
import logging

from beatmarket.db.base import get_db
from beatmarket.models.user import User
from beatmarket.schemas.beat import (
    AdminBeatListResponse,
    AdminBeatResponse,
    BeatCreate,
    BeatUpdate,
)
from beatmarket.schemas.order import AdminOrderListResponse, AdminOrderResponse, AdminStatsResponse
from beatmarket.services.catalog import AdminStatsService, CatalogService, UploadedFile, page_count
from beatmarket.services.storage.s3 import S3Service, S3ServiceError, get_storage
from beatmarket.api.deps import get_current_admin

logger = logging.getLogger(__name__)

router = APIRouter()


async def _collect_uploads(**files: Optional[UploadFile]) -> Dict[str, UploadedFile]:
    uploads = {}
    for kind, upload in files.items():
        if upload is None:
            continue
        uploads[kind] = UploadedFile(
            filename=upload.filename,
            contents=await upload.read(),
            content_type=upload.content_type,
        )
    return uploads


# =============================================================================
# Beats
# =============================================================================

@router.get("/beats", response_model=AdminBeatListResponse)
async def list_beats(
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
    status_filter: str = Query("all", alias="status", pattern="^(all|active|inactive)$"),
    genre: Optional[str] = None,
    search: Optional[str] = Query(None, max_length=100),
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
    storage: S3Service = Depends(get_storage),
):
    """List every beat, including inactive ones."""
    service = CatalogService(db, storage)
    beats, total = service.list_admin(page=page, size=size, status=status_filter, genre=genre, search=search)
    return AdminBeatListResponse(
        items=[service.to_admin_response(beat) for beat in beats],
        total=total,
        page=page,
        size=size,
        pages=page_count(total, size),
    )


@router.get("/beats/{beat_id}", response_model=AdminBeatResponse)
async def get_beat(
    beat_id: UUID,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
    storage: S3Service = Depends(get_storage),
):
    service = CatalogService(db, storage)
    return service.to_admin_response(service.get_admin(beat_id))


@router.post("/beats", response_model=AdminBeatResponse, status_code=status.HTTP_201_CREATED)
async def create_beat(
    metadata: str = Form(..., description="BeatCreate payload as JSON"),
    preview: Optional[UploadFile] = File(None),
    cover: Optional[UploadFile] = File(None),
    mp3: Optional[UploadFile] = File(None),
    wav: Optional[UploadFile] = File(None),
    stems: Optional[UploadFile] = File(None),
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
    storage: S3Service = Depends(get_storage),
):
    """
    Create a beat from JSON metadata and its media files.

    - preview, cover and mp3 are required; wav and stems are optional
    - Every file is validated before anything is uploaded
    """
    try:
        data = BeatCreate.model_validate_json(metadata)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False),
        )

    uploads = await _collect_uploads(preview=preview, cover=cover, mp3=mp3, wav=wav, stems=stems)
    service = CatalogService(db, storage)
    try:
        beat = service.create_beat(data, uploads)
    except S3ServiceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    logger.info(f"Admin {admin.id} created beat {beat.id}")
    return service.to_admin_response(beat)


@router.post("/beats/{beat_id}/files", response_model=AdminBeatResponse)
async def replace_beat_files(
    beat_id: UUID,
    mp3: Optional[UploadFile] = File(None),
    wav: Optional[UploadFile] = File(None),
    stems: Optional[UploadFile] = File(None),
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
    storage: S3Service = Depends(get_storage),
):
    """Upload new audio files. Grants already issued keep the files they were issued with."""
    uploads = await _collect_uploads(mp3=mp3, wav=wav, stems=stems)
    service = CatalogService(db, storage)
    try:
        beat = service.replace_files(beat_id, uploads)
    except S3ServiceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return service.to_admin_response(beat)


@router.put("/beats/{beat_id}", response_model=AdminBeatResponse)
async def update_beat(
    beat_id: UUID,
    data: BeatUpdate,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
    storage: S3Service = Depends(get_storage),
):
    service = CatalogService(db, storage)
    return service.to_admin_response(service.update_beat(beat_id, data))


@router.delete("/beats/{beat_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_beat(
    beat_id: UUID,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
    storage: S3Service = Depends(get_storage),
):
    """Soft delete: the beat is deactivated, never removed."""
    CatalogService(db, storage).deactivate_beat(beat_id)


# =============================================================================
# Orders & stats
# =============================================================================

@router.get("/orders", response_model=AdminOrderListResponse)
async def list_orders(
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
    status_filter: Optional[str] = Query(None, alias="status", pattern="^(all|pending|completed|failed|refunded)$"),
    search: Optional[str] = Query(None, max_length=100),
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    orders, total = AdminStatsService(db).list_orders(page=page, size=size, status=status_filter, search=search)
    return AdminOrderListResponse(
        items=[AdminOrderResponse.model_validate(order) for order in orders],
        total=total,
        page=page,
        size=size,
        pages=page_count(total, size),
    )


@router.get("/stats", response_model=AdminStatsResponse)
async def get_stats(
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return AdminStatsService(db).get_stats()
