"""Disk-backed upload storage.

Files land in ``UPLOAD_DIR`` under a random name and are served back by the
``/uploads`` static mount. Everything is validated before a byte is written.
"""

import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import structlog

from app.config import get_settings
from app.core.exceptions import ValidationException

settings = get_settings()
logger = structlog.get_logger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}
VIDEO_EXTENSIONS = {".mp4", ".mov", ".webm"}
IMAGE_MIME_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}
VIDEO_MIME_TYPES = {"video/mp4", "video/quicktime", "video/webm"}
# Clients that cannot tell us the type send this; the extension decides then
GENERIC_MIME_TYPES = {"application/octet-stream", ""}

STATIC_PREFIX = "/uploads"


@dataclass
class UploadPayload:
    """A fully received upload, not yet on disk."""
    filename: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def extension(self) -> str:
        return Path(self.filename).suffix.lower()


@dataclass
class StoredFile:
    name: str
    path: Path
    size: int
    extension: str

    @property
    def url_path(self) -> str:
        return f"{STATIC_PREFIX}/{self.name}"

    @property
    def public_url(self) -> str:
        return f"{settings.API_BASE_URL.rstrip('/')}{self.url_path}"


def _limit_for(extension: str) -> int:
    return settings.MAX_VIDEO_SIZE if extension in VIDEO_EXTENSIONS else settings.MAX_IMAGE_SIZE


def validate_upload(upload: UploadPayload, allow_video: bool = False) -> None:
    """Reject wrong types and oversized files."""
    allowed_ext = IMAGE_EXTENSIONS | VIDEO_EXTENSIONS if allow_video else IMAGE_EXTENSIONS
    allowed_mime = IMAGE_MIME_TYPES | VIDEO_MIME_TYPES if allow_video else IMAGE_MIME_TYPES

    if upload.extension not in allowed_ext:
        raise ValidationException(
            f"File type not allowed. Allowed: {', '.join(sorted(allowed_ext))}",
            {"field": "file", "extension": upload.extension},
        )
    content_type = (upload.content_type or "").split(";")[0].strip().lower()
    if content_type not in GENERIC_MIME_TYPES and content_type not in allowed_mime:
        raise ValidationException(
            f"MIME type not allowed: {content_type}",
            {"field": "file", "content_type": content_type},
        )

    limit = _limit_for(upload.extension)
    if len(upload.content) > limit:
        raise ValidationException(
            f"File size exceeds the {limit // (1024 * 1024)}MB limit.",
            {"field": "file", "size": len(upload.content), "max_size": limit},
        )


def save_upload(upload: UploadPayload, prefix: str = "file", allow_video: bool = False) -> StoredFile:
    """Validate and persist an upload under a collision-free name."""
    validate_upload(upload, allow_video=allow_video)

    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    name = f"{prefix}-{uuid.uuid4().hex}{upload.extension}"
    path = Path(settings.UPLOAD_DIR) / name
    path.write_bytes(upload.content)

    logger.info("Upload stored", file=name, size=len(upload.content))
    return StoredFile(name=name, path=path, size=len(upload.content), extension=upload.extension)


def discard_upload(stored: Optional[StoredFile]) -> None:
    """Remove a staged file; used when the request that staged it fails."""
    if stored is None:
        return
    try:
        stored.path.unlink(missing_ok=True)
        logger.info("Staged upload removed", file=stored.name)
    except OSError as e:
        logger.error("Could not remove staged upload", file=stored.name, error=str(e))
