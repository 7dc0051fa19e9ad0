# backend/listing_media/services/image_pipeline/utils/image_utils.py
"""
Image pipeline utilities: header inspection, dimension math, format
support checks and base64 data URI parsing.
"""

import base64
import binascii
import io
import math
import re
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError, features

from ....enums import ImageFormat
from ....exceptions import DecodeError
from ....models.media_model import UploadedImage
from ....utils.file_helpers import get_extension

DATA_URI_PATTERN = re.compile(r"^data:image/(\w+);base64,")
WHITESPACE_PATTERN = re.compile(r"\s+")

PIL_FORMAT_NAMES = {
    ImageFormat.WEBP: "WEBP",
    ImageFormat.JPEG: "JPEG",
    ImageFormat.PNG: "PNG",
}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_variant_dimensions(
    source_size: Tuple[int, int], target_size: Tuple[int, int]
) -> Tuple[int, int]:
    """
    Fit source_size into the target box preserving aspect ratio.

    Never upscales: a source that already fits inside the box keeps its
    own dimensions.

    Args:
        source_size: (width, height) of the source image
        target_size: (width, height) of the tier box

    Returns:
        (width, height) of the variant
    """
    source_width, source_height = source_size
    target_width, target_height = target_size

    if source_width <= target_width and source_height <= target_height:
        return (source_width, source_height)

    source_ratio = source_width / source_height
    target_ratio = target_width / target_height

    if source_ratio > target_ratio:
        # Source is wider - fit to width
        new_width = target_width
        new_height = round_half_up(target_width / source_ratio)
    else:
        # Source is taller - fit to height
        new_height = target_height
        new_width = round_half_up(target_height * source_ratio)

    return (max(1, new_width), max(1, new_height))


def read_image_dimensions(content: bytes) -> Optional[Tuple[int, int]]:
    """Read (width, height) from the image header without a full decode."""
    try:
        with Image.open(io.BytesIO(content)) as img:
            return img.size
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError):
        return None


def build_uploaded_image(
    content: bytes,
    filename: str,
    mime_type: Optional[str],
    size: Optional[int] = None,
) -> UploadedImage:
    """size overrides len(content) for uploads whose body was not kept."""
    dimensions = read_image_dimensions(content)
    return UploadedImage(
        content=content,
        filename=filename,
        mime_type=(mime_type or "").lower(),
        extension=get_extension(filename),
        size=len(content) if size is None else size,
        width=dimensions[0] if dimensions else None,
        height=dimensions[1] if dimensions else None,
    )


def is_format_supported(image_format: ImageFormat) -> bool:
    """Whether the installed Pillow build can encode the format."""
    if image_format == ImageFormat.WEBP:
        return bool(features.check("webp"))
    return True


def parse_data_uri(data: str) -> Tuple[str, bytes]:
    """
    Split a 'data:image/<fmt>;base64,<payload>' URI.

    Returns:
        (format, decoded bytes); format is lower-cased, 'jpg' kept as given

    Raises:
        DecodeError: If the prefix is missing or the payload is not base64
    """
    match = DATA_URI_PATTERN.match(data or "")
    if not match:
        raise DecodeError("Invalid base64 image data")

    # Line-wrapped payloads (MIME style) are accepted
    payload = WHITESPACE_PATTERN.sub("", data[match.end():])
    try:
        content = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise DecodeError("Failed to decode base64 image")

    if not content:
        raise DecodeError("Failed to decode base64 image")

    return match.group(1).lower(), content
