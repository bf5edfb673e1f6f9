"""Catalog reads and admin catalog management."""
import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from beatmarket.app.exceptions import NotFoundError, ValidationFailedError
from beatmarket.models.base import utcnow
from beatmarket.models.beat import Beat
from beatmarket.models.enums import OrderStatus
from beatmarket.models.order import Order
from beatmarket.models.user import User
from beatmarket.repositories.base import BaseRepository
from beatmarket.repositories.beat_repo import BeatRepository
from beatmarket.repositories.download_repo import DownloadRepository
from beatmarket.repositories.order_repo import OrderRepository
from beatmarket.schemas.beat import (
    AdminBeatResponse,
    BeatCreate,
    BeatResponse,
    BeatUpdate,
)
from beatmarket.schemas.order import AdminStatsResponse, TopBeat
from beatmarket.services.storage.s3 import (
    S3Service,
    S3ServiceError,
    beat_file_key,
    cover_key,
    preview_key,
)
from beatmarket.utils.validators import UploadValidationError, validate_upload

logger = logging.getLogger(__name__)

REQUIRED_ON_CREATE = ("preview", "cover", "mp3")
AUDIO_KINDS = ("mp3", "wav", "stems")


@dataclass
class UploadedFile:
    filename: Optional[str]
    contents: bytes
    content_type: Optional[str] = None


def page_count(total: int, size: int) -> int:
    return math.ceil(total / size) if size else 0


class CatalogService:

    def __init__(self, db: Session, storage: S3Service):
        self.db = db
        self.storage = storage
        self.beats = BeatRepository(db)
        self.downloads = DownloadRepository(db)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_response(self, beat: Beat) -> BeatResponse:
        data = BeatResponse.model_validate(beat).model_dump()
        data['preview_url'] = self.storage.public_url(beat.preview_key)
        data['cover_url'] = self.storage.public_url(beat.cover_key)
        return BeatResponse(**data)

    def to_admin_response(self, beat: Beat) -> AdminBeatResponse:
        base = self.to_response(beat).model_dump()
        return AdminBeatResponse(
            **base,
            preview_key=beat.preview_key,
            cover_key=beat.cover_key,
            files=beat.files or {},
        )

    # ------------------------------------------------------------------
    # Storefront
    # ------------------------------------------------------------------

    def list_public(
        self,
        page: int = 1,
        size: int = 12,
        genre: Optional[str] = None,
        mood: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Beat], int]:
        return self.beats.list_catalog(skip=(page - 1) * size, limit=size, genre=genre, mood=mood, search=search)

    def get_public(self, beat_id: UUID) -> Beat:
        """Active beat by id; each view counts as a play."""
        beat = self.beats.get_active(beat_id)
        if beat is None:
            raise NotFoundError("Beat not found")
        self.beats.increment_play_count(beat.id)
        self.db.refresh(beat)
        return beat

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def list_admin(
        self,
        page: int = 1,
        size: int = 10,
        status: str = 'all',
        genre: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Beat], int]:
        return self.beats.list_admin(skip=(page - 1) * size, limit=size, status=status, genre=genre, search=search)

    def get_admin(self, beat_id: UUID) -> Beat:
        beat = self.beats.get(beat_id)
        if beat is None:
            raise NotFoundError("Beat not found")
        return beat

    def _validate_files(self, uploads: Dict[str, UploadedFile], required=()) -> Dict[str, str]:
        """Check presence, extension and size of every file. Returns content types by kind."""
        missing = [kind for kind in required if kind not in uploads]
        if missing:
            raise ValidationFailedError(f"Missing required files: {', '.join(missing)}")

        content_types = {}
        for kind, upload in uploads.items():
            try:
                content_types[kind] = validate_upload(kind, upload.filename, upload.contents)
            except UploadValidationError as exc:
                raise ValidationFailedError(str(exc))
        return content_types

    def _upload_all(self, beat_id: UUID, uploads: Dict[str, UploadedFile], content_types: Dict[str, str]) -> Dict[str, str]:
        """Upload every file; on failure remove what was already stored."""
        keys = {}
        try:
            for kind, upload in uploads.items():
                if kind == "preview":
                    key = preview_key(str(beat_id), upload.filename)
                elif kind == "cover":
                    key = cover_key(str(beat_id), upload.filename)
                else:
                    key = beat_file_key(str(beat_id), kind, upload.filename)
                keys[kind] = self.storage.upload_file(
                    key, upload.contents, content_types[kind], {'beat-id': str(beat_id)}
                )
        except S3ServiceError:
            self._discard(keys.values())
            raise
        return keys

    def _discard(self, keys) -> None:
        for key in keys:
            try:
                self.storage.delete_object(key)
            except S3ServiceError as exc:
                logger.warning(f"Could not remove orphaned upload {key}: {exc}")

    def create_beat(self, data: BeatCreate, uploads: Dict[str, UploadedFile]) -> Beat:
        """
        Create a beat from metadata plus its media files.

        Every file is validated before the first upload, and the beat is only
        persisted once all uploads succeeded.

        Raises:
            ValidationFailedError: Missing or invalid file
            S3ServiceError: Upload failed
        """
        unknown = set(uploads) - set(REQUIRED_ON_CREATE) - set(AUDIO_KINDS)
        if unknown:
            raise ValidationFailedError(f"Unexpected files: {', '.join(sorted(unknown))}")
        content_types = self._validate_files(uploads, required=REQUIRED_ON_CREATE)

        beat_id = uuid.uuid4()
        keys = self._upload_all(beat_id, uploads, content_types)

        beat = Beat(
            id=beat_id,
            title=data.title,
            bpm=data.bpm,
            musical_key=data.musical_key,
            genres=data.genres,
            moods=data.moods,
            tags=data.tags,
            preview_key=keys["preview"],
            cover_key=keys["cover"],
            files={kind: keys[kind] for kind in AUDIO_KINDS if kind in keys},
            waveform=data.waveform.model_dump(),
            licenses=[entry.model_dump(mode='json') for entry in data.licenses],
            is_active=True,
            play_count=0,
            sales_count=0,
        )
        self.db.add(beat)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            self._discard(keys.values())
            raise
        self.db.refresh(beat)
        logger.info(f"Beat {beat.id} '{beat.title}' created with files {sorted(keys)}")
        return beat

    def replace_files(self, beat_id: UUID, uploads: Dict[str, UploadedFile]) -> Beat:
        """Upload new audio files for a beat. Existing grants keep their resolved keys."""
        beat = self.get_admin(beat_id)
        if not uploads:
            raise ValidationFailedError("No files provided")
        unknown = set(uploads) - set(AUDIO_KINDS)
        if unknown:
            raise ValidationFailedError(f"Unexpected files: {', '.join(sorted(unknown))}")

        content_types = self._validate_files(uploads)
        keys = self._upload_all(beat.id, uploads, content_types)

        files = dict(beat.files or {})
        files.update(keys)
        beat.files = files
        self.db.commit()
        self.db.refresh(beat)
        logger.info(f"Beat {beat.id}: replaced files {sorted(keys)}")
        return beat

    def update_beat(self, beat_id: UUID, data: BeatUpdate) -> Beat:
        """
        Replace the metadata. Files and the active flag are kept when omitted.

        A beat sold under an exclusive license cannot be put back on sale.
        """
        beat = self.get_admin(beat_id)
        if data.is_active and not beat.is_active and self.downloads.has_exclusive_sale(beat.id):
            raise ValidationFailedError("Beat was sold exclusively and cannot be reactivated")

        beat.title = data.title
        beat.bpm = data.bpm
        beat.musical_key = data.musical_key
        beat.genres = data.genres
        beat.moods = data.moods
        beat.tags = data.tags
        beat.licenses = [entry.model_dump(mode='json') for entry in data.licenses]
        beat.waveform = data.waveform.model_dump()
        beat.preview_key = data.preview_key or beat.preview_key
        beat.cover_key = data.cover_key or beat.cover_key
        if data.files is not None:
            beat.files = {kind: key for kind, key in data.files.model_dump().items() if key}
        if data.is_active is not None:
            beat.is_active = data.is_active
        self.db.commit()
        self.db.refresh(beat)
        logger.info(f"Beat {beat.id} updated")
        return beat

    def deactivate_beat(self, beat_id: UUID) -> None:
        """Soft delete: the beat leaves the catalog but orders and grants keep pointing at it."""
        if not self.beats.deactivate(beat_id):
            raise NotFoundError("Beat not found")
        logger.info(f"Beat {beat_id} deactivated")


class AdminStatsService:

    def __init__(self, db: Session):
        self.db = db
        self.beats = BeatRepository(db)
        self.orders = OrderRepository(db)
        self.users = BaseRepository(User, db)

    def get_stats(self, now: Optional[datetime] = None) -> AdminStatsResponse:
        now = now or utcnow()
        start_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        return AdminStatsResponse(
            total_beats=self.beats.count(),
            active_beats=self.beats.count({'is_active': True}),
            total_orders=self.orders.count(),
            completed_orders=self.orders.count({'status': OrderStatus.completed}),
            total_revenue=self.orders.revenue(),
            month_revenue=self.orders.revenue(since=start_of_month),
            total_users=self.users.count(),
            top_beats=[
                TopBeat(id=beat.id, title=beat.title, sales_count=beat.sales_count)
                for beat in self.beats.top_sellers(limit=5)
            ],
        )

    def list_orders(
        self,
        page: int = 1,
        size: int = 10,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Order], int]:
        return self.orders.list_admin(skip=(page - 1) * size, limit=size, status=status, search=search)
