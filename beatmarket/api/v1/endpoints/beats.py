"""Public catalog endpoints."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from beatmarket.db.base import get_db
from beatmarket.schemas.beat import BeatResponse, BeatListResponse
from beatmarket.services.catalog import CatalogService, page_count
from beatmarket.services.storage.s3 import S3Service, get_storage

router = APIRouter()


@router.get("", response_model=BeatListResponse)
async def list_beats(
    page: int = Query(1, ge=1),
    size: int = Query(12, ge=1, le=100),
    genre: Optional[str] = None,
    mood: Optional[str] = None,
    search: Optional[str] = Query(None, max_length=100),
    db: Session = Depends(get_db),
    storage: S3Service = Depends(get_storage),
):
    """
    List active beats, newest first.

    - Filter by genre, mood or a title/tag search
    - Inactive (deleted or exclusively sold) beats never appear
    """
    service = CatalogService(db, storage)
    beats, total = service.list_public(page=page, size=size, genre=genre, mood=mood, search=search)
    return BeatListResponse(
        items=[service.to_response(beat) for beat in beats],
        total=total,
        page=page,
        size=size,
        pages=page_count(total, size),
    )


@router.get("/{beat_id}", response_model=BeatResponse)
async def get_beat(
    beat_id: UUID,
    db: Session = Depends(get_db),
    storage: S3Service = Depends(get_storage),
):
    """Get one active beat. Counts as a play."""
    service = CatalogService(db, storage)
    return service.to_response(service.get_public(beat_id))
