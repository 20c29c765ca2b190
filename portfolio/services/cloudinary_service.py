"""
Cloudinary object storage for gallery image bytes.
The database is the system of record; Cloudinary only holds the binaries referenced by `src`.
"""
import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from portfolio.config import settings
import logging
import asyncio
import re
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)

# Configure Cloudinary with credentials from settings
cloudinary.config(
    cloud_name=settings.CLOUDINARY_CLOUD_NAME,
    api_key=settings.CLOUDINARY_API_KEY,
    api_secret=settings.CLOUDINARY_API_SECRET,
    secure=True  # Always use HTTPS for secure URLs
)

# https://res.cloudinary.com/{cloud}/image/upload[/v{version}]/{public_id}.{ext}
_PUBLIC_ID_PATTERN = re.compile(r'/image/upload(?:/v\d+)?/(.+)$')


async def upload_image(
    content: bytes,
    folder: Optional[str] = None,
    max_retries: int = 3
) -> Dict[str, Any]:
    """
    Upload image bytes to Cloudinary with retry logic.

    Args:
        content: Image bytes to upload
        folder: Cloudinary folder (defaults to CLOUDINARY_FOLDER)
        max_retries: Maximum number of attempts for transient failures

    Returns:
        dict: url, public_id, format, width, height, bytes

    Raises:
        CloudinaryError: If upload fails after all retries
    """
    folder = folder or settings.CLOUDINARY_FOLDER

    for attempt in range(max_retries):
        try:
            result = await asyncio.to_thread(
                cloudinary.uploader.upload,
                content,
                folder=folder,
                resource_type="image",
            )

            logger.info(f"Successfully uploaded image: {result['public_id']}")

            return {
                "url": result["secure_url"],
                "public_id": result["public_id"],
                "format": result.get("format"),
                "width": result.get("width"),
                "height": result.get("height"),
                "bytes": result.get("bytes"),
            }

        except CloudinaryError as e:
            logger.warning(f"Cloudinary upload error (attempt {attempt + 1}/{max_retries}): {str(e)}")

            if attempt < max_retries - 1:
                await asyncio.sleep(2 ** attempt)  # 1s, 2s, 4s backoff
                continue

            logger.error(f"Cloudinary upload failed after {max_retries} attempts: {str(e)}")
            raise


async def delete_image(public_id: str, max_retries: int = 3) -> Dict[str, Any]:
    """
    Delete an image from Cloudinary with retry logic.
    A 'not found' result counts as deleted.

    Raises:
        CloudinaryError: If deletion fails after all retries
    """
    for attempt in range(max_retries):
        try:
            result = await asyncio.to_thread(
                cloudinary.uploader.destroy,
                public_id,
                invalidate=True,  # Invalidate CDN cache
                resource_type="image",
            )

            if result.get('result') in ('ok', 'not found'):
                logger.info(f"Deleted image from Cloudinary: {public_id} (result: {result.get('result')})")
            else:
                logger.warning(f"Unexpected Cloudinary delete result for {public_id}: {result}")
            return result

        except CloudinaryError as e:
            logger.warning(f"Cloudinary delete error (attempt {attempt + 1}/{max_retries}) for {public_id}: {str(e)}")

            if attempt < max_retries - 1:
                await asyncio.sleep(2 ** attempt)
                continue

            logger.error(f"Cloudinary delete failed after {max_retries} attempts for {public_id}: {str(e)}")
            raise


def extract_public_id_from_url(url: str) -> str:
    """
    Extract the Cloudinary public_id from a delivery URL.

    Example:
        https://res.cloudinary.com/demo/image/upload/v123/gallery/cozy-bed.webp
        -> "gallery/cozy-bed"

    Raises:
        ValueError: If the URL is not a Cloudinary upload URL
    """
    match = _PUBLIC_ID_PATTERN.search(url)
    if not match:
        raise ValueError(f"Invalid Cloudinary URL format: {url}")

    parts = match.group(1).split('/')
    # public_id never includes the file extension
    if '.' in parts[-1]:
        parts[-1] = parts[-1].rsplit('.', 1)[0]
    return '/'.join(parts)


def validate_cloudinary_config() -> bool:
    """
    Validate that Cloudinary is properly configured.

    Returns:
        bool: True if Cloudinary is configured, False otherwise
    """
    if not settings.CLOUDINARY_CLOUD_NAME:
        logger.warning("CLOUDINARY_CLOUD_NAME not configured")
        return False
    if not settings.CLOUDINARY_API_KEY:
        logger.warning("CLOUDINARY_API_KEY not configured")
        return False
    if not settings.CLOUDINARY_API_SECRET:
        logger.warning("CLOUDINARY_API_SECRET not configured")
        return False

    logger.info("Cloudinary configuration validated successfully")
    return True
