"""
Image conversion utility for converting uploads to WebP before storage.
"""
import io
import logging
from typing import Optional, Tuple
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

DEFAULT_WEBP_QUALITY = 85  # 0-100
DEFAULT_WEBP_METHOD = 6    # 0-6, higher = better compression but slower
MAX_DIMENSION = 3840       # Longest side after conversion


def identify_image(image_bytes: bytes) -> Optional[str]:
    """
    Return the Pillow format name (JPEG, PNG, WEBP, ...) or None if the bytes are not an image.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            return image.format
    except (UnidentifiedImageError, OSError):
        return None


async def convert_to_webp(
    image_bytes: bytes,
    quality: int = DEFAULT_WEBP_QUALITY,
    method: int = DEFAULT_WEBP_METHOD,
    max_dimension: Optional[int] = MAX_DIMENSION,
) -> Tuple[bytes, bool]:
    """
    Convert image bytes to WebP.

    Returns:
        (bytes, converted): the WebP bytes and True, or the original bytes and False
        when the input is already WebP or cannot be decoded.
    """
    try:
        image = Image.open(io.BytesIO(image_bytes))

        if image.format == 'WEBP':
            logger.debug("Image is already WebP format, skipping conversion")
            return image_bytes, False

        # WebP keeps alpha, everything else goes to RGB
        if image.mode == 'P':
            image = image.convert('RGBA')
        elif image.mode not in ('RGB', 'RGBA', 'LA'):
            image = image.convert('RGB')

        if max_dimension:
            width, height = image.size
            if width > max_dimension or height > max_dimension:
                image.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)
                logger.info(f"Downscaled image from {width}x{height} to {image.size[0]}x{image.size[1]}")

        buffer = io.BytesIO()
        image.save(buffer, format='WEBP', quality=quality, method=method)
        webp_bytes = buffer.getvalue()

        logger.info(
            f"Converted image to WebP: {len(image_bytes):,} bytes -> {len(webp_bytes):,} bytes "
            f"(quality={quality})"
        )
        return webp_bytes, True

    except UnidentifiedImageError as e:
        logger.warning(f"Cannot identify image format: {str(e)}")
        return image_bytes, False
    except OSError as e:
        logger.error(f"Error converting image to WebP: {str(e)}", exc_info=True)
        return image_bytes, False
