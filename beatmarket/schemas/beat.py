"""Beat catalog schemas."""
from pydantic import BaseModel, Field, field_validator, ConfigDict
from datetime import datetime
from uuid import UUID
from typing import Optional, List

from beatmarket.models.enums import LicenseType


class LicenseFeatures(BaseModel):
    """What a license tier grants. -1 means unlimited."""
    mp3: bool = True
    wav: bool = False
    stems: bool = False
    streams: int = Field(-1, ge=-1)
    physical_sales: int = Field(-1, ge=-1)
    exclusivity: bool = False


class LicenseEntry(BaseModel):
    """A tier offered for a beat. Price is in cents."""
    type: LicenseType
    price: int = Field(..., ge=0, description="Price in minor currency units")
    available: bool = True
    features: LicenseFeatures = Field(default_factory=LicenseFeatures)


class WaveformData(BaseModel):
    peaks: List[float] = Field(default_factory=list)
    duration: float = Field(0, ge=0)


class BeatFiles(BaseModel):
    """Storage keys of the full-quality files."""
    mp3: Optional[str] = None
    wav: Optional[str] = None
    stems: Optional[str] = None


class BeatBase(BaseModel):
    """Fields shared by create and update payloads."""
    title: str = Field(..., min_length=1, max_length=255)
    bpm: int = Field(..., ge=60, le=200)
    musical_key: str = Field(..., min_length=1, max_length=32)
    genres: List[str] = Field(..., min_length=1)
    moods: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    licenses: List[LicenseEntry] = Field(..., min_length=1)
    waveform: WaveformData = Field(default_factory=WaveformData)

    @field_validator('genres', 'moods', 'tags')
    @classmethod
    def dedupe_labels(cls, v: List[str]) -> List[str]:
        """Strip and de-duplicate, preserving first occurrence."""
        seen = []
        for label in v:
            label = label.strip()
            if label and label not in seen:
                seen.append(label)
        return seen

    @field_validator('licenses')
    @classmethod
    def one_license_per_tier(cls, v: List[LicenseEntry]) -> List[LicenseEntry]:
        tiers = [entry.type for entry in v]
        if len(tiers) != len(set(tiers)):
            raise ValueError('Each license tier may only appear once per beat')
        return v


class BeatCreate(BeatBase):
    """Metadata part of the multipart beat creation request."""
    pass


class BeatUpdate(BeatBase):
    """
    Replacement of a beat's metadata.

    Storage keys, files and the active flag are only changed when sent.
    """
    preview_key: Optional[str] = None
    cover_key: Optional[str] = None
    files: Optional[BeatFiles] = None
    is_active: Optional[bool] = None


class BeatResponse(BaseModel):
    """Beat as returned to storefront and admin clients."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    bpm: int
    musical_key: str
    genres: List[str]
    moods: List[str]
    tags: List[str]
    preview_url: Optional[str] = None
    cover_url: Optional[str] = None
    waveform: WaveformData
    licenses: List[LicenseEntry]
    is_active: bool
    play_count: int
    sales_count: int
    created_at: datetime
    updated_at: datetime


class AdminBeatResponse(BeatResponse):
    """Admin view also exposes raw storage keys."""
    preview_key: Optional[str] = None
    cover_key: Optional[str] = None
    files: BeatFiles


class BeatListResponse(BaseModel):
    items: List[BeatResponse]
    total: int
    page: int
    size: int
    pages: int


class AdminBeatListResponse(BaseModel):
    items: List[AdminBeatResponse]
    total: int
    page: int
    size: int
    pages: int
