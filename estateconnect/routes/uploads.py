# Image upload: multipart file -> blob store -> signed URL, and the download route that checks the signature.
import logging
import os
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import FileResponse

from ..blobstore import BlobAccessDenied
from ..context import AppContext, get_context
from ..rate_limit import rate_limit
from .. import models, schemas
from .auth import get_current_user

router = APIRouter()
# Served outside the API prefix, at the URLs the blob store signs
files_router = APIRouter()
logger = logging.getLogger("estateconnect.uploads")

# Accepted content types and the extension each is stored under
ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


def _extension(filename: str, content_type: str) -> str:
    ext = os.path.splitext(filename or "")[1].lstrip(".").lower()
    if ext in {"jpg", "jpeg", "png", "webp"}:
        return "jpg" if ext == "jpeg" else ext
    return ALLOWED_IMAGE_TYPES[content_type]


@router.post("/upload-image", response_model=schemas.UploadResponse, dependencies=[Depends(rate_limit("write"))])
def upload_image(
    file: UploadFile = File(...),
    ctx: AppContext = Depends(get_context),
    user: models.User = Depends(get_current_user),
) -> schemas.UploadResponse:
    content_type = (file.content_type or "").lower()
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only JPEG, PNG or WebP images are allowed")

    raw = file.file.read()
    if not raw:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file provided")
    if len(raw) > ctx.settings.max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large (max {ctx.settings.max_upload_bytes} bytes)",
        )

    try:
        blob = ctx.blobs.put(user.id, raw, _extension(file.filename, content_type))
    except OSError as exc:
        logger.exception("upload.failed", extra={"user_id": user.id, "content_type": content_type})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to upload image") from exc

    logger.info("upload.stored", extra={"user_id": user.id, "path": blob.path, "size": len(raw)})
    return schemas.UploadResponse(url=blob.url, path=blob.path)


@files_router.get("/uploads/{path:path}")
def download_upload(
    path: str,
    token: Optional[str] = Query(None),
    ctx: AppContext = Depends(get_context),
) -> FileResponse:
    if not token:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Signed URL required")
    try:
        disk_path = ctx.blobs.open_signed(path, token)
    except BlobAccessDenied as exc:
        logger.info("upload.access_denied", extra={"path": path})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired link") from exc
    if not os.path.isfile(disk_path):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return FileResponse(disk_path)
