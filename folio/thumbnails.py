"""Thumbnail generation for post images.

The content store only keeps opaque encoded blobs; this is the one place that
decodes pixels.
"""

from __future__ import annotations

import io
import logging

from PIL import Image, ImageOps, UnidentifiedImageError

from . import settings
from .errors import ValidationError

logger = logging.getLogger(__name__)


def validate_upload_size(size: int) -> None:
    if size <= 0:
        raise ValidationError("No image found")
    if size > settings.MAX_UPLOAD_BYTES:
        limit_mb = settings.MAX_UPLOAD_BYTES / 1024 / 1024
        raise ValidationError(f"Image exceeds upload limit of {limit_mb:.0f} MB")


def make_thumbnail(
    image_bytes: bytes,
    size: int | None = None,
    quality: int | None = None,
) -> bytes:
    """
    Crop-fill ``image_bytes`` to a ``size`` x ``size`` square and encode it as JPEG.

    The crop is anchored at the top edge.

    Raises:
        ValidationError: the bytes are not a decodable image.
    """
    size = size or settings.THUMBNAIL_SIZE
    quality = quality or settings.THUMBNAIL_JPEG_QUALITY

    try:
        img = Image.open(io.BytesIO(image_bytes))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        logger.info(f"Rejected undecodable image: {e}")
        raise ValidationError("Error decoding image for thumbnail")

    if img.mode != "RGB":
        img = img.convert("RGB")

    thumb = ImageOps.fit(img, (size, size), method=Image.Resampling.LANCZOS, centering=(0.5, 0.0))

    buf = io.BytesIO()
    thumb.save(buf, format="JPEG", quality=quality)
    return buf.getvalue()
