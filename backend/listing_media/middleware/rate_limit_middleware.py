# backend/listing_media/middleware/rate_limit_middleware.py

"""
Rate Limiting Middleware for FastAPI application.

Applies the upload limit (default 10 uploads per minute per client) to
every POST under /api whose path contains '/upload' and to opening a
chunked upload session. Individual chunks are not counted.
"""

import time
from typing import Callable, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ..config import Settings, settings as default_settings
from ..enums import LogEmoji, LoggerName, LogSource
from ..services.logger import get_service_logger
from ..utils.response_helpers import ResponseFormatter
from .rate_limiter import SlidingWindowRateLimiter, get_client_identifier

logger = get_service_logger(LoggerName.MIDDLEWARE, LogSource.MIDDLEWARE)

CLEANUP_INTERVAL_SECONDS = 300


def is_upload_request(request: Request) -> bool:
    path = request.url.path
    return (
        request.method == "POST"
        and path.startswith("/api/")
        and ("/upload" in path or path.endswith("/videos/chunked"))
    )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Middleware for applying rate limits to upload endpoints.

    Adds X-RateLimit-* headers to limited responses and answers 429 with
    a Retry-After header once the window is full.
    """

    def __init__(
        self,
        app,
        settings: Optional[Settings] = None,
        limiter: Optional[SlidingWindowRateLimiter] = None,
    ):
        super().__init__(app)
        self.settings = settings or default_settings
        self.limiter = limiter or SlidingWindowRateLimiter()
        self.last_cleanup = time.time()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not is_upload_request(request):
            return await call_next(request)

        current_time = time.time()
        if current_time - self.last_cleanup > CLEANUP_INTERVAL_SECONDS:
            cleaned_count = await self.limiter.cleanup_old_entries(
                max_age_seconds=self.settings.upload_rate_window_seconds
            )
            if cleaned_count:
                logger.debug(
                    f"Rate limiter cleanup: {cleaned_count} entries removed",
                    emoji=LogEmoji.CLEANUP,
                )
            self.last_cleanup = current_time

        client_id = f"upload:{get_client_identifier(request)}"
        allowed, info = await self.limiter.is_allowed(
            client_id,
            max_requests=self.settings.upload_rate_limit,
            window_seconds=self.settings.upload_rate_window_seconds,
        )

        headers = {
            "X-RateLimit-Limit": str(info["limit"]),
            "X-RateLimit-Remaining": str(info["remaining"]),
            "X-RateLimit-Reset": str(info["reset"]),
        }

        if not allowed:
            headers["Retry-After"] = str(info["retry_after"])
            return JSONResponse(
                status_code=429,
                content=ResponseFormatter.error(
                    "Too many upload attempts. Please try again later.",
                    error_code="RATE_LIMITED",
                    retry_after=info["retry_after"],
                ),
                headers=headers,
            )

        response = await call_next(request)
        for header_name, header_value in headers.items():
            response.headers[header_name] = header_value
        return response
