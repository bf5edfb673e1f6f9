"""Enums for database models."""
import enum


class UserRole(str, enum.Enum):
    """User role types."""
    user = "user"
    admin = "admin"


class LicenseType(str, enum.Enum):
    """License tiers a beat can be sold under."""
    basic = "basic"
    standard = "standard"
    pro = "pro"
    unlimited = "unlimited"
    exclusive = "exclusive"


class OrderStatus(str, enum.Enum):
    """Order status."""
    pending = "pending"
    completed = "completed"
    failed = "failed"
    refunded = "refunded"


class FileKind(str, enum.Enum):
    """Downloadable file kinds attached to a purchase."""
    mp3 = "mp3"
    wav = "wav"
    stems = "stems"
    contract = "contract"


AUDIO_FILE_KINDS = (FileKind.mp3, FileKind.wav, FileKind.stems)
