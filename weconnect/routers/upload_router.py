# weconnect/routers/upload_router.py
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, File, Request, UploadFile

from ..dependencies.auth import get_current_user
from ..errors import ServiceUnavailableError, UpstreamError, ValidationError, success_body
from ..infrastructure.storage import SupabaseStorage

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/upload", tags=["upload"])

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
MAX_FILE_SIZE = 10 * 1024 * 1024
MAX_FILES = 20


@router.post("/images")
async def upload_images(
    request: Request,
    images: Optional[List[UploadFile]] = File(None),
    current_user=Depends(get_current_user),
):
    storage: SupabaseStorage = request.app.state.storage
    if not storage.is_configured:
        raise ServiceUnavailableError("Storage is not configured. Set SUPABASE_URL and SUPABASE_ANON_KEY.")

    if not images:
        raise ValidationError("No files to upload.")
    if len(images) > MAX_FILES:
        raise ValidationError(f"At most {MAX_FILES} files can be uploaded at once.")
    if any(f.content_type not in ALLOWED_IMAGE_TYPES for f in images):
        raise ValidationError("Only images (JPEG, PNG, GIF, WebP) are allowed.")

    # size is recorded by the multipart parser, so nothing is read yet
    if any(f.size is not None and f.size > MAX_FILE_SIZE for f in images):
        raise ValidationError("Files must not be larger than 10MB.")

    files = []
    for upload in images:
        data = await upload.read()
        if len(data) > MAX_FILE_SIZE:
            raise ValidationError("Files must not be larger than 10MB.")
        files.append((upload.filename, data, upload.content_type))

    logger.info("upload_started", user_id=current_user.id, count=len(files))
    urls = await storage.upload_many(current_user.id, files)
    if not urls:
        raise UpstreamError("Failed to upload the files.", error="Upload Failed")

    logger.info("upload_finished", user_id=current_user.id, count=len(urls))
    return success_body({"urls": urls, "count": len(urls)}, f"{len(urls)} file(s) uploaded.")
