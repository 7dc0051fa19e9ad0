# backend/listing_media/enums.py
"""
Application Enums - Centralized enum definitions.

All enum definitions live here so that constants, models and services can
import them without creating circular dependencies.
"""

from enum import Enum


# =============================================================================
# MEDIA SYSTEM
# =============================================================================


class MediaKind(str, Enum):
    """Kinds of media a property can own."""

    IMAGE = "image"
    VIDEO = "video"


class MediaListingKind(str, Enum):
    """Filter values for property media listings."""

    IMAGES = "images"
    VIDEOS = "videos"
    ALL = "all"


class ChunkedUploadStatus(str, Enum):
    """Lifecycle of a chunked upload session."""

    INITIATED = "initiated"
    UPLOADING = "uploading"
    READY = "ready"


class ImageFormat(str, Enum):
    """Output encodings available to the variant generator."""

    WEBP = "webp"
    JPEG = "jpeg"
    PNG = "png"


class ValidationErrorCode(str, Enum):
    """Issue codes reported by the upload validator."""

    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    UNSUPPORTED_EXTENSION = "UNSUPPORTED_EXTENSION"
    UNSUPPORTED_MIME_TYPE = "UNSUPPORTED_MIME_TYPE"
    DIMENSIONS_TOO_LARGE = "DIMENSIONS_TOO_LARGE"
    DANGEROUS_FILENAME = "DANGEROUS_FILENAME"


# =============================================================================
# STORAGE SYSTEM
# =============================================================================


class StorageDriver(str, Enum):
    """Storage backends a collection can be written to."""

    LOCAL = "local"
    BUNNY = "bunny"


class BunnyRegion(str, Enum):
    """Bunny Storage region codes."""

    DE = "de"
    NY = "ny"
    LA = "la"
    SG = "sg"
    SYD = "syd"
    UK = "uk"


# =============================================================================
# LOGGING SYSTEM
# =============================================================================


class LogLevel(str, Enum):
    """Log level constants for centralized logging system."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogSource(str, Enum):
    """Log source constants for identifying log origins."""

    API = "api"
    SYSTEM = "system"
    PIPELINE = "pipeline"
    STORAGE = "storage"
    CACHE = "cache"
    MIDDLEWARE = "middleware"


class LogEmoji(str, Enum):
    """Type-safe emoji constants for log messages."""

    # Request/Response
    INCOMING = "📥"
    OUTGOING = "📤"

    # Status
    ERROR = "❌"
    WARNING = "⚠️"
    INFO = "ℹ️"
    DEBUG = "🐞"

    # Media
    IMAGE = "🖼️"
    VIDEO = "🎥"
    UPLOAD = "⬆️"

    # System
    STARTUP = "🚀"
    SHUTDOWN = "🛑"
    HEALTH = "💓"
    CLEANUP = "🧹"
    SECURITY = "🔒"
    CACHE = "🗄️"
    STORAGE = "💾"

    # Actions
    DELETE = "🗑️"


class LoggerName(str, Enum):
    """Logger name constants for categorizing log entries."""

    # API/Request loggers
    REQUEST_LOGGER = "request_logger"
    ERROR_HANDLER = "error_handler"
    MIDDLEWARE = "middleware"
    ROUTER = "router"

    # Pipeline loggers
    IMAGE_PIPELINE = "image_pipeline"

    # Service loggers
    MEDIA_SERVICE = "media_service"
    CHUNKED_UPLOAD_SERVICE = "chunked_upload_service"
    STORAGE_SERVICE = "storage_service"
    CACHE_SERVICE = "cache_service"

    # System loggers
    SYSTEM = "system"
    API = "api"
