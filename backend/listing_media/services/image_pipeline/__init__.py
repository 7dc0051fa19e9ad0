# backend/listing_media/services/image_pipeline/__init__.py
"""
Image Pipeline Module

Upload validation, per-tier variant generation and all-or-nothing storage
of listing photos.
"""

from .generators import VariantGenerator
from .image_pipeline import ImagePipeline
from .utils import (
    build_uploaded_image,
    calculate_variant_dimensions,
    parse_data_uri,
)
from .validators import UploadValidator

__all__ = [
    "ImagePipeline",
    "UploadValidator",
    "VariantGenerator",
    "build_uploaded_image",
    "calculate_variant_dimensions",
    "parse_data_uri",
]
