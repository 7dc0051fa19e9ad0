"""
Image Pipeline Utilities
"""

from .image_utils import (
    DATA_URI_PATTERN,
    PIL_FORMAT_NAMES,
    build_uploaded_image,
    calculate_variant_dimensions,
    is_format_supported,
    parse_data_uri,
    read_image_dimensions,
    round_half_up,
)

__all__ = [
    "DATA_URI_PATTERN",
    "PIL_FORMAT_NAMES",
    "build_uploaded_image",
    "calculate_variant_dimensions",
    "is_format_supported",
    "parse_data_uri",
    "read_image_dimensions",
    "round_half_up",
]
