"""
Upload API Endpoints.

Vehicle photos and videos go to media storage; the returned URLs are then
attached to a vehicle through intake, complete or edit.
"""

from typing import List

from fastapi import APIRouter, Depends, File, UploadFile

from api.dependencies import require_admin
from api.models import SignedUploadRequest, SignedUploadResponse
from services.media_service import MediaFile, create_signed_upload, upload_media

router = APIRouter(dependencies=[Depends(require_admin)])


@router.post(
    "/upload",
    response_model=List[str],
    summary="Upload Media",
    description="Upload images (jpeg/png/webp, 10MB) and videos (mp4/webm/quicktime/m4v/3gpp, 200MB)."
)
def upload(files: List[UploadFile] = File(...)):
    media = [
        MediaFile(
            filename=f.filename or "upload",
            content_type=f.content_type or "application/octet-stream",
            data=f.file.read(),
        )
        for f in files
    ]
    return upload_media(media)


@router.post(
    "/upload/signed-url",
    response_model=SignedUploadResponse,
    summary="Create Signed Upload URL",
    description="Direct-to-storage upload for large walkaround videos."
)
def signed_upload(request: SignedUploadRequest):
    result = create_signed_upload(request.filename, request.content_type)
    return SignedUploadResponse(path=result.path, signed_url=result.signed_url, token=result.token)
