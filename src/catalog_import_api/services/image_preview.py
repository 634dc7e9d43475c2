"""
Image Preview Service

Builds small thumbnails for the row -> image picker. Previews are a
convenience only: an image Pillow cannot read gets no preview and is still
submitted as-is.
"""

import io
import base64
import logging
from typing import Optional

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 160


def build_thumbnail_data_url(content: bytes, max_size: int = DEFAULT_MAX_SIZE) -> Optional[str]:
    """
    Convert image bytes to a PNG thumbnail data URL.

    Args:
        content: Raw image bytes
        max_size: Maximum dimension (width or height) in pixels

    Returns:
        "data:image/png;base64,..." or None if the bytes are not a readable image
    """
    if not content:
        return None

    try:
        with Image.open(io.BytesIO(content)) as img:
            if img.mode not in ("RGB", "RGBA"):
                img = img.convert("RGBA")

            if max(img.size) > max_size:
                img.thumbnail((max_size, max_size), Image.Resampling.LANCZOS)

            buffer = io.BytesIO()
            img.save(buffer, format="PNG", optimize=True)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.debug(f"No preview for image: {e}")
        return None

    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("utf-8")
