"""
File Upload Utility - validate and store profile media.

Supported formats:
- Images (.jpg, .jpeg, .png, .webp) up to 5MB (avatars)
- Videos (.mp4, .webm, .mov) up to 50MB (intro videos)

Files land in settings.upload_dir and are served under /uploads.
"""

import logging
import os
import uuid

from fastapi import UploadFile, HTTPException

from monera.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.webp'}
VIDEO_EXTENSIONS = {'.mp4', '.webm', '.mov'}

UPLOAD_URL_PREFIX = "/uploads"
CHUNK_SIZE = 1024 * 1024


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


async def save_upload(file: UploadFile, kind: str, allowed: set, max_size_mb: int) -> str:
    """
    Validate and store an uploaded file.

    Args:
        file: FastAPI UploadFile
        kind: sub-directory ("avatars", "videos")
        allowed: accepted extensions
        max_size_mb: size limit

    Returns:
        Public URL path of the stored file

    Raises:
        HTTPException on validation errors
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    ext = get_file_extension(file.filename)
    if ext not in allowed:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{ext}'. Allowed: {', '.join(sorted(allowed))}"
        )

    limit = max_size_mb * 1024 * 1024
    chunks = []
    size = 0
    while True:
        chunk = await file.read(CHUNK_SIZE)
        if not chunk:
            break
        size += len(chunk)
        if size > limit:
            raise HTTPException(
                status_code=413,
                detail=f"File too large. Maximum size: {max_size_mb}MB"
            )
        chunks.append(chunk)

    if not size:
        raise HTTPException(status_code=400, detail="File is empty")
    content = b"".join(chunks)

    target_dir = os.path.join(settings.upload_dir, kind)
    os.makedirs(target_dir, exist_ok=True)
    stored_name = f"{uuid.uuid4().hex}{ext}"
    with open(os.path.join(target_dir, stored_name), "wb") as fh:
        fh.write(content)

    logger.info("Stored %s upload %s (%d bytes)", kind, stored_name, len(content))
    return f"{UPLOAD_URL_PREFIX}/{kind}/{stored_name}"


async def save_avatar(file: UploadFile) -> str:
    return await save_upload(file, "avatars", IMAGE_EXTENSIONS, settings.max_image_size_mb)


async def save_video(file: UploadFile) -> str:
    return await save_upload(file, "videos", VIDEO_EXTENSIONS, settings.max_video_size_mb)
