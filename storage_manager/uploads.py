import logging

import cloudinary.uploader

from storage_manager.config import cloudinary_configured
from storage_manager.errors import InternalError
from storage_manager.models import FileType

logger = logging.getLogger(__name__)

IMAGE_MIME_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/svg+xml",
}


def file_type_for(mimetype: str) -> FileType:
    if mimetype == "application/pdf":
        return FileType.PDF
    if mimetype in IMAGE_MIME_TYPES:
        return FileType.IMAGE
    return FileType.NOTE  # fallback for text/docs


def upload_to_storage(fileobj) -> dict:
    """Push the bytes to Cloudinary. Returns the secure url and what is needed to remove it again."""
    if not cloudinary_configured():
        raise InternalError("File storage is not configured")
    try:
        # resource_type='auto' so images and other file types are handled
        result = cloudinary.uploader.upload(fileobj, resource_type="auto")
    except Exception as e:
        logger.exception("Cloudinary upload failed")
        raise InternalError("File upload failed") from e
    return {
        "url": result.get("secure_url"),
        "public_id": result.get("public_id"),
        "resource_type": result.get("resource_type", "raw"),
    }


def discard_from_storage(stored: dict) -> None:
    """Best-effort removal of an uploaded object whose database row was never committed."""
    try:
        cloudinary.uploader.destroy(stored["public_id"], resource_type=stored["resource_type"])
    except Exception:
        logger.exception("Could not remove orphaned upload %s", stored.get("public_id"))
