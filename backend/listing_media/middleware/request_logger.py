# backend/listing_media/middleware/request_logger.py
"""
Request logging middleware for FastAPI application.

Logs every request with timing and status, tagged with the correlation ID
assigned by the error handler middleware.
"""

import time

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..enums import LogEmoji, LoggerName, LogSource
from ..services.logger import get_service_logger

logger = get_service_logger(LoggerName.REQUEST_LOGGER, LogSource.MIDDLEWARE)

SLOW_REQUEST_SECONDS = 5.0


class RequestLoggerMiddleware(BaseHTTPMiddleware):
    """
    Request logging middleware with performance metrics.

    Upload bodies are never logged, only their declared length and type.
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.exclude_paths = {
            "/health",
            "/docs",
            "/redoc",
            "/openapi.json",
            "/favicon.ico",
        }

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        start_time = time.time()
        correlation_id = getattr(request.state, "correlation_id", "unknown")

        logger.debug(
            f"{request.method} {request.url.path}",
            extra_context={
                "correlation_id": correlation_id,
                "client_ip": getattr(request.client, "host", "unknown"),
                "content_length": request.headers.get("content-length"),
                "content_type": request.headers.get("content-type"),
            },
            emoji=LogEmoji.INCOMING,
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            duration_ms = round((time.time() - start_time) * 1000, 2)
            logger.error(
                f"{request.method} {request.url.path} -> FAILED ({duration_ms}ms)",
                error_context={
                    "correlation_id": correlation_id,
                    "exception_type": type(exc).__name__,
                },
            )
            raise

        duration = time.time() - start_time
        duration_ms = round(duration * 1000, 2)
        status_code = response.status_code
        message = f"{request.method} {request.url.path} -> {status_code} ({duration_ms}ms)"
        context = {"correlation_id": correlation_id, "status_code": status_code}

        if status_code >= 500:
            logger.error(message, error_context=context)
        elif status_code >= 400 or duration > SLOW_REQUEST_SECONDS:
            logger.warning(message, extra_context=context)
        else:
            logger.info(message, extra_context=context, emoji=LogEmoji.OUTGOING)

        return response
