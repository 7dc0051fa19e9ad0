"""
Centralized Logger Service Module.

Usage:
    from listing_media.services.logger import get_service_logger
    from listing_media.enums import LoggerName, LogSource

    logger = get_service_logger(LoggerName.MEDIA_SERVICE, LogSource.API)
    logger.info("Uploaded image", extra_context={"property_id": 12})
"""

from ...enums import LogEmoji, LoggerName, LogLevel, LogSource
from .logger_service import (
    get_service_logger,
    initialize_global_logger,
    is_logger_initialized,
)

__all__ = [
    "get_service_logger",
    "initialize_global_logger",
    "is_logger_initialized",
    "LogLevel",
    "LogSource",
    "LoggerName",
    "LogEmoji",
]
