"""
Listing Media Pydantic Models Package

Models used for upload inputs, generated variants, storage results and
API request bodies.
"""

from .media_model import (
    Base64ImageUploadRequest,
    BatchItemError,
    BatchUploadResult,
    ChunkedUploadInitRequest,
    ChunkedUploadProgress,
    ChunkedUploadSession,
    DeletePathRequest,
    EncodedVariant,
    FileInfo,
    ImageVariant,
    PropertyMediaListing,
    QualityTier,
    StorageWriteResult,
    UploadedImage,
    UploadedMedia,
    UploadedImageResult,
    UploadedVideoResult,
    ValidationIssue,
)

__all__ = [
    "Base64ImageUploadRequest",
    "BatchItemError",
    "BatchUploadResult",
    "ChunkedUploadInitRequest",
    "ChunkedUploadProgress",
    "ChunkedUploadSession",
    "DeletePathRequest",
    "EncodedVariant",
    "FileInfo",
    "ImageVariant",
    "PropertyMediaListing",
    "QualityTier",
    "StorageWriteResult",
    "UploadedImage",
    "UploadedMedia",
    "UploadedImageResult",
    "UploadedVideoResult",
    "ValidationIssue",
]
