# backend/listing_media/middleware/__init__.py
"""
Middleware package for FastAPI application.

Provides centralized error handling, request logging and upload rate limiting.
"""

from .error_handler import ErrorHandlerMiddleware, register_exception_handlers
from .rate_limit_middleware import RateLimitMiddleware
from .request_logger import RequestLoggerMiddleware

__all__ = [
    "ErrorHandlerMiddleware",
    "RequestLoggerMiddleware",
    "RateLimitMiddleware",
    "register_exception_handlers",
]
