# backend/listing_media/middleware/error_handler.py
"""
Error handling for the FastAPI application.

ErrorHandlerMiddleware assigns a correlation ID to every request and turns
unhandled exceptions into a generic 500 envelope. The exception handlers
registered by register_exception_handlers render domain exceptions, HTTP
exceptions and request validation errors in the same envelope. Internal
details (paths on disk, storage keys, tracebacks) are only logged.
"""

import traceback
import uuid
from typing import Any, Dict, List

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..enums import LogEmoji, LoggerName, LogSource
from ..exceptions import MediaServiceError
from ..services.logger import get_service_logger
from ..utils.response_helpers import ResponseFormatter, media_error_response

logger = get_service_logger(LoggerName.ERROR_HANDLER, LogSource.MIDDLEWARE)

CORRELATION_HEADER = "X-Correlation-ID"


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", "unknown")


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Centralized error handling middleware.

    Catches all unhandled exceptions, logs them with correlation IDs,
    and returns user-friendly error responses.
    """

    def __init__(self, app: ASGIApp, debug_mode: bool = False):
        super().__init__(app)
        self.debug_mode = debug_mode

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"Unhandled exception in {request.method} {request.url.path}",
                exception=exc,
                error_context={
                    "correlation_id": correlation_id,
                    "exception_type": type(exc).__name__,
                    "client_ip": getattr(request.client, "host", "unknown"),
                },
                emoji=LogEmoji.ERROR,
            )
            response = self._generic_error_response(exc, correlation_id)

        response.headers[CORRELATION_HEADER] = correlation_id
        return response

    def _generic_error_response(self, exc: Exception, correlation_id: str) -> JSONResponse:
        content = ResponseFormatter.error(
            "An internal server error occurred",
            error_code="INTERNAL_ERROR",
            correlation_id=correlation_id,
        )
        if self.debug_mode:
            content["exception_type"] = type(exc).__name__
            content["traceback"] = traceback.format_exc()
        return JSONResponse(status_code=500, content=content)


async def media_exception_handler(request: Request, exc: MediaServiceError) -> JSONResponse:
    correlation_id = _correlation_id(request)
    context: Dict[str, Any] = {
        "correlation_id": correlation_id,
        "error_code": exc.error_code,
        "path": request.url.path,
    }
    if exc.details:
        context["details"] = exc.details

    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__}: {exc.message}", error_context=context)
    else:
        logger.info(f"{type(exc).__name__}: {exc.message}", extra_context=context)

    return media_error_response(exc, correlation_id)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=ResponseFormatter.error(
            message,
            error_code="HTTP_ERROR",
            correlation_id=_correlation_id(request),
        ),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors: List[Dict[str, Any]] = [
        {
            "field": " -> ".join(str(loc) for loc in error.get("loc", ())),
            "message": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content=ResponseFormatter.error(
            "Request validation failed",
            error_code="REQUEST_VALIDATION_FAILED",
            errors=errors,
            correlation_id=_correlation_id(request),
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MediaServiceError, media_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
