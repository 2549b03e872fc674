"""
Utility module for product image storage.

Images are uploaded to Cloudinary under the ``product-images`` folder and
tagged ``temporary`` until a product is saved with the URL. Bookkeeping
failures (tag removal, deletion) are logged and never block product writes.
"""
import logging
import os
import uuid
from datetime import datetime
from typing import Optional

import cloudinary
import cloudinary.uploader
from fastapi import UploadFile

from api.common.errors import TransportError, ValidationFailedError
from api.common.settings import PRODUCT_IMAGES_FOLDER

logger = logging.getLogger(__name__)


def configure_cloudinary():
    """Configure Cloudinary with environment variables."""
    cloudinary.config(
        cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME"),
        api_key=os.getenv("CLOUDINARY_API_KEY"),
        api_secret=os.getenv("CLOUDINARY_API_SECRET"),
        secure=True
    )


def extract_public_id(url: str) -> Optional[str]:
    """
    Get the Cloudinary public id from a delivery URL.

    URL format: https://res.cloudinary.com/CLOUD_NAME/image/upload/v1234567890/folder/file_id.ext
    """
    if not url or "cloudinary.com" not in url:
        return None

    url_parts = url.split("/")
    if len(url_parts) < 7:
        return None

    version_index = -1
    for i, part in enumerate(url_parts):
        if part.startswith("v") and part[1:].isdigit():
            version_index = i
            break

    if version_index == -1:
        return None

    public_id_with_ext = "/".join(url_parts[version_index + 1:])
    return os.path.splitext(public_id_with_ext)[0]


async def upload_image(file: UploadFile, file_id: Optional[str] = None) -> str:
    """
    Upload a product image and return its public URL.

    Args:
        file: The uploaded image
        file_id: Optional custom ID for the file (a UUID is generated otherwise)

    Returns:
        The secure public URL of the uploaded image

    Raises:
        ValidationFailedError: If no file or a non-image file is provided
        TransportError: If Cloudinary rejects the upload
    """
    if not file:
        raise ValidationFailedError("No file provided")

    content_type = file.content_type or ""
    if not content_type.startswith("image/"):
        raise ValidationFailedError(f"File must be an image, got {content_type}")

    try:
        configure_cloudinary()
        contents = await file.read()

        if not file_id:
            file_id = f"{uuid.uuid4()}"

        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        upload_options = {
            "public_id": f"{file_id}_{timestamp}",
            "folder": PRODUCT_IMAGES_FOLDER,
            "resource_type": "image",
            "quality": "auto:eco",  # server-side compression
            "tags": ["temporary", f"uploaded_{timestamp}"],
        }

        result = cloudinary.uploader.upload(contents, **upload_options)
        return result.get("secure_url")

    except Exception as e:
        logger.exception("Image upload failed")
        raise TransportError(str(e))
    finally:
        await file.seek(0)


async def mark_image_permanent(url: str) -> bool:
    """
    Remove the temporary tag from an uploaded image once a product references it.

    Returns:
        True if the tag was removed, False otherwise
    """
    public_id = extract_public_id(url)
    if not public_id:
        return False

    try:
        configure_cloudinary()
        result = cloudinary.uploader.remove_tag("temporary", [public_id])
        return result.get("public_ids", []) != []
    except Exception as e:
        logger.warning("Could not mark image %s as permanent: %s", public_id, e)
        return False


async def delete_image_by_url(url: str) -> bool:
    """
    Delete an image from Cloudinary using its public URL.

    Returns:
        True if deletion was successful, False otherwise
    """
    public_id = extract_public_id(url)
    if not public_id:
        return False

    try:
        configure_cloudinary()
        result = cloudinary.uploader.destroy(public_id)
        return result.get("result") == "ok"
    except Exception as e:
        logger.warning("Could not delete image %s: %s", public_id, e)
        return False
