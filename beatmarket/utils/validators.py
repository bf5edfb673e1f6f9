# beatmarket/utils/validators.py

from typing import Optional
import posixpath

# ---------------------------------------------------------------------
# Configuration (tweakable)
# ---------------------------------------------------------------------

MB = 1024 * 1024

UPLOAD_RULES = {
    "preview": {"extensions": {".mp3"}, "max_bytes": 20 * MB, "content_type": "audio/mpeg"},
    "cover": {"extensions": {".jpg", ".jpeg", ".png", ".webp"}, "max_bytes": 10 * MB, "content_type": None},
    "mp3": {"extensions": {".mp3"}, "max_bytes": 50 * MB, "content_type": "audio/mpeg"},
    "wav": {"extensions": {".wav"}, "max_bytes": 200 * MB, "content_type": "audio/wav"},
    "stems": {"extensions": {".zip"}, "max_bytes": 500 * MB, "content_type": "application/zip"},
}

_IMAGE_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}


class UploadValidationError(ValueError):
    """Raised when an uploaded file fails validation."""


def validate_upload(kind: str, filename: Optional[str], contents: bytes) -> str:
    """
    Validate an uploaded media file before it is sent to storage.

    Args:
        kind: One of preview, cover, mp3, wav, stems
        filename: Client supplied filename
        contents: Raw bytes

    Returns:
        The content type to store the object with

    Raises:
        UploadValidationError
    """
    rules = UPLOAD_RULES.get(kind)
    if rules is None:
        raise UploadValidationError(f"Unknown file kind: {kind}")

    if not contents:
        raise UploadValidationError(f"Empty {kind} file")

    if len(contents) > rules["max_bytes"]:
        raise UploadValidationError(
            f"{kind} file too large (max {rules['max_bytes'] // MB}MB)"
        )

    ext = posixpath.splitext((filename or "").lower())[1]
    if ext not in rules["extensions"]:
        allowed = ", ".join(sorted(rules["extensions"]))
        raise UploadValidationError(f"Invalid extension for {kind}. Expected: {allowed}")

    return rules["content_type"] or _IMAGE_TYPES[ext]
