# backend/listing_media/exceptions.py
"""
Custom exceptions for the listing media service.

Centralized location for all custom exception classes. Each exception
carries the HTTP status the error handler middleware answers with.
"""

from typing import Any, Dict, List, Optional


class MediaServiceError(Exception):
    """Base exception for all media service errors."""

    status_code = 500
    error_code = "MEDIA_SERVICE_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class MediaValidationError(MediaServiceError):
    """Uploaded media failed one or more validation checks."""

    status_code = 422
    error_code = "VALIDATION_FAILED"

    def __init__(
        self,
        message: str,
        issues: Optional[List[Any]] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.issues = issues or []
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(MediaServiceError):
    """Requested file does not exist in storage."""

    status_code = 404
    error_code = "NOT_FOUND"


class InvalidPathError(MediaServiceError):
    """Storage path is malformed or escapes the storage root."""

    status_code = 400
    error_code = "INVALID_PATH"


class DecodeError(MediaServiceError):
    """Source bytes could not be decoded as a raster image."""

    status_code = 400
    error_code = "DECODE_FAILED"


class EncodeError(MediaServiceError):
    """A variant could not be encoded."""

    pass


class StorageError(MediaServiceError):
    """A storage backend operation failed."""

    error_code = "STORAGE_ERROR"


class VariantGenerationError(MediaServiceError):
    """One or more quality tiers failed; no variants were kept."""

    error_code = "VARIANT_GENERATION_FAILED"

    def __init__(self, message: str, tier_errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.tier_errors = tier_errors or {}


class ConfigurationError(MediaServiceError):
    """Configuration is missing or invalid."""

    error_code = "CONFIGURATION_ERROR"
