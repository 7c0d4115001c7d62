"""
Media storage for vehicle photos, walkaround videos and bills of sale.

Files go to a Supabase Storage bucket. Small files are uploaded through the
API; large videos can be sent straight to storage with a signed upload URL.

Security:
- Only whitelisted content types are accepted
- Size limits are enforced per media kind
- Object names are random; the client-supplied filename only contributes its
  extension
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from typing import List, Sequence
from uuid import uuid4

from config import get_settings
from domain.errors import LedgerErrorKind, WorkflowError
from repositories.client import get_supabase

logger = logging.getLogger(__name__)

MB = 1024 * 1024

ALLOWED_IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/webp"})
ALLOWED_VIDEO_TYPES = frozenset({
    "video/mp4",
    "video/webm",
    "video/quicktime",
    "video/x-m4v",
    "video/3gpp",
    "video/3gpp2",
})
ALLOWED_DOCUMENT_TYPES = frozenset({"application/pdf", "image/jpeg", "image/png"})

MAX_IMAGE_SIZE = 10 * MB
MAX_VIDEO_SIZE = 200 * MB
MAX_DOCUMENT_SIZE = 20 * MB


@dataclass(frozen=True, slots=True)
class MediaFile:
    filename: str
    content_type: str
    data: bytes


@dataclass(frozen=True, slots=True)
class SignedUpload:
    path: str
    signed_url: str
    token: str


def _folder_and_limit(content_type: str) -> tuple[str, int]:
    if content_type in ALLOWED_IMAGE_TYPES:
        return "images", MAX_IMAGE_SIZE
    if content_type in ALLOWED_VIDEO_TYPES:
        return "videos", MAX_VIDEO_SIZE
    raise WorkflowError(
        LedgerErrorKind.INVALID_MEDIA,
        f"Unsupported file type: {content_type}. Allowed types: "
        + ", ".join(sorted(ALLOWED_IMAGE_TYPES | ALLOWED_VIDEO_TYPES)),
    )


def _object_path(folder: str, filename: str) -> str:
    ext = posixpath.splitext(filename or "")[1].lower()
    if not ext.isascii() or len(ext) > 10:
        ext = ""
    return f"{folder}/{uuid4().hex}{ext}"


def validate_media(file: MediaFile) -> str:
    """Return the storage folder for `file` or raise WorkflowError."""

    folder, limit = _folder_and_limit(file.content_type)
    if len(file.data) > limit:
        raise WorkflowError(
            LedgerErrorKind.INVALID_MEDIA,
            f"{file.filename} must be smaller than {limit // MB}MB",
        )
    if not file.data:
        raise WorkflowError(LedgerErrorKind.INVALID_MEDIA, f"{file.filename} is empty")
    return folder


def _upload(path: str, file: MediaFile) -> str:
    bucket = get_supabase().storage.from_(get_settings().media_bucket)
    bucket.upload(path, file.data, {"content-type": file.content_type})
    return bucket.get_public_url(path)


def upload_media(files: Sequence[MediaFile]) -> List[str]:
    """
    Validate every file first, then upload them; returns public URLs in order.

    Nothing is uploaded if any file is rejected.
    """
    folders = [validate_media(f) for f in files]

    urls = []
    for folder, file in zip(folders, files):
        path = _object_path(folder, file.filename)
        urls.append(_upload(path, file))
        logger.info(
            "Uploaded media",
            extra={"path": path, "content_type": file.content_type, "size": len(file.data)},
        )
    return urls


def upload_bill_of_sale(transaction_id: int, file: MediaFile) -> str:
    if file.content_type not in ALLOWED_DOCUMENT_TYPES:
        raise WorkflowError(
            LedgerErrorKind.INVALID_MEDIA,
            "Bill of sale must be a PDF, JPEG or PNG file",
        )
    if not file.data or len(file.data) > MAX_DOCUMENT_SIZE:
        raise WorkflowError(
            LedgerErrorKind.INVALID_MEDIA,
            f"Bill of sale must be between 1 byte and {MAX_DOCUMENT_SIZE // MB}MB",
        )
    path = _object_path(f"bills-of-sale/{transaction_id}", file.filename)
    return _upload(path, file)


def create_signed_upload(filename: str, content_type: str) -> SignedUpload:
    """Signed URL for a direct client upload (large walkaround videos)."""

    folder, _ = _folder_and_limit(content_type)
    path = _object_path(folder, filename)
    bucket = get_supabase().storage.from_(get_settings().media_bucket)
    result = bucket.create_signed_upload_url(path)

    return SignedUpload(
        path=path,
        signed_url=str(result["signed_url"]),
        token=str(result["token"]),
    )


__all__ = [
    "MediaFile",
    "SignedUpload",
    "validate_media",
    "upload_media",
    "upload_bill_of_sale",
    "create_signed_upload",
]
