"""
Image Resizer
=============
Resizes uploaded images with Pillow.

The result always fits inside the requested box, keeps the aspect ratio and
is never enlarged beyond the original size.
"""

from __future__ import annotations

import io
import logging
from typing import Optional

from PIL import Image, UnidentifiedImageError

from .errors import ImageProcessingError, UnsupportedFormatError

logger = logging.getLogger(__name__)

# format name → (Pillow format, MIME type)
OUTPUT_FORMATS = {
    "jpeg": ("JPEG", "image/jpeg"),
    "jpg": ("JPEG", "image/jpeg"),
    "png": ("PNG", "image/png"),
    "webp": ("WEBP", "image/webp"),
}


def target_size(
    original: tuple[int, int],
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> tuple[int, int]:
    """
    Compute the output size for a fit-inside, no-enlargement resize.

    With only one dimension given, the other follows the aspect ratio.
    """
    if not width and not height:
        raise UnsupportedFormatError("Please specify at least width or height")
    if (width is not None and width < 1) or (height is not None and height < 1):
        raise UnsupportedFormatError("Width and height must be positive integers")

    orig_width, orig_height = original
    scales = []
    if width:
        scales.append(width / orig_width)
    if height:
        scales.append(height / orig_height)
    scale = min(min(scales), 1.0)

    return (
        max(1, round(orig_width * scale)),
        max(1, round(orig_height * scale)),
    )


def resize_image(
    data: bytes,
    width: Optional[int] = None,
    height: Optional[int] = None,
    quality: int = 90,
    output_format: str = "jpeg",
) -> tuple[bytes, str]:
    """
    Resize an encoded image.

    Args:
        data: Encoded input image.
        width: Maximum output width in pixels.
        height: Maximum output height in pixels.
        quality: Encoder quality (1-100) for JPEG and WebP.
        output_format: jpeg, jpg, png or webp.

    Returns:
        (encoded output, MIME type)

    Raises:
        UnsupportedFormatError: Bad format, dimensions or quality.
        ImageProcessingError: The input cannot be decoded.
    """
    fmt = output_format.lower()
    if fmt not in OUTPUT_FORMATS:
        raise UnsupportedFormatError("Unsupported format. Use jpeg, png, or webp.")
    if not 1 <= quality <= 100:
        raise UnsupportedFormatError("Quality must be between 1 and 100")
    pil_format, mime_type = OUTPUT_FORMATS[fmt]

    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageProcessingError(f"Cannot read image: {e}") from e

    new_size = target_size(img.size, width, height)
    if new_size != img.size:
        img = img.resize(new_size, Image.Resampling.LANCZOS)

    # JPEG has no alpha channel
    if pil_format == "JPEG" and img.mode not in ("RGB", "L"):
        img = img.convert("RGB")

    out = io.BytesIO()
    if pil_format == "PNG":
        img.save(out, format=pil_format, optimize=True)
    else:
        img.save(out, format=pil_format, quality=quality)

    logger.info(f"Resized image to {new_size[0]}x{new_size[1]} ({fmt})")
    return out.getvalue(), mime_type
