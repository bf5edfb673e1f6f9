"""Beat catalog model."""
from typing import Any, Dict, Optional
from sqlalchemy import Column, String, Integer, Boolean, JSON
from sqlalchemy.dialects.postgresql import UUID
import uuid

from beatmarket.db.base import Base
from .base import TimestampMixin
from .enums import AUDIO_FILE_KINDS, LicenseType


class Beat(Base, TimestampMixin):
    """
    A purchasable instrumental.

    Licenses are embedded as a JSON list, one entry per tier:
    ``{"type", "price", "available", "features": {"mp3", "wav", "stems",
    "streams", "physical_sales", "exclusivity"}}``. Prices are in cents.
    """

    __tablename__ = 'beats'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    title = Column(String(255), nullable=False, index=True)
    bpm = Column(Integer, nullable=False, index=True)
    musical_key = Column(String(32), nullable=False)
    genres = Column(JSON, default=list, nullable=False)
    moods = Column(JSON, default=list, nullable=False)
    tags = Column(JSON, default=list, nullable=False)

    # Storage keys
    preview_key = Column(String(512), nullable=True)
    cover_key = Column(String(512), nullable=True)
    files = Column(JSON, default=dict, nullable=False)  # {"mp3": key, "wav": key, "stems": key}

    waveform = Column(JSON, default=lambda: {"peaks": [], "duration": 0}, nullable=False)
    licenses = Column(JSON, default=list, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False, index=True)
    play_count = Column(Integer, default=0, nullable=False)
    sales_count = Column(Integer, default=0, nullable=False)

    def get_license(self, license_type) -> Optional[Dict[str, Any]]:
        """Return the embedded license entry for a tier, if the beat offers it."""
        wanted = LicenseType(license_type).value
        for entry in self.licenses or []:
            if entry.get('type') == wanted:
                return entry
        return None

    def files_for_license(self, license_type) -> Dict[str, str]:
        """
        Resolve the audio file keys a license tier grants access to.

        Only kinds flagged in the license features *and* present on the beat
        are returned.
        """
        entry = self.get_license(license_type)
        if entry is None:
            return {}
        features = entry.get('features') or {}
        beat_files = self.files or {}
        resolved = {}
        for kind in AUDIO_FILE_KINDS:
            key = beat_files.get(kind.value)
            if features.get(kind.value) and key:
                resolved[kind.value] = key
        return resolved

    def __repr__(self) -> str:
        return f'<Beat(id={self.id}, title={self.title}, active={self.is_active})>'
