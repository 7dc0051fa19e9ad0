# backend/listing_media/utils/response_helpers.py
"""
Response Helper Functions

Every endpoint answers with the same JSON envelope:
    {"success": bool, "message": str, "data": ...}            on success
    {"success": false, "message": str, "errors": ..., ...}    on failure
"""

from typing import Any, Dict, List, Optional, Union

from fastapi.responses import JSONResponse

from ..exceptions import MediaServiceError, MediaValidationError, VariantGenerationError


class ResponseFormatter:
    """
    Helper class for creating standardized API responses.
    """

    @staticmethod
    def success(
        message: str, data: Optional[Union[Dict[str, Any], List]] = None, **kwargs
    ) -> Dict[str, Any]:
        """
        Create a standardized success response.

        Args:
            message: Success message
            data: Optional data payload
            **kwargs: Additional fields to include
        """
        response: Dict[str, Any] = {"success": True, "message": message}

        if data is not None:
            response["data"] = data

        response.update(kwargs)
        return response

    @staticmethod
    def error(
        message: str,
        error_code: Optional[str] = None,
        errors: Optional[Union[Dict[str, Any], List[Any]]] = None,
        **kwargs,
    ) -> Dict[str, Any]:
        """
        Create a standardized error response.

        Args:
            message: Error message safe to show to clients
            error_code: Optional error code for client handling
            errors: Optional itemized errors (validation issues, per-tier errors)
            **kwargs: Additional fields to include
        """
        response: Dict[str, Any] = {"success": False, "message": message}

        if error_code:
            response["error_code"] = error_code

        if errors:
            response["errors"] = errors

        response.update(kwargs)
        return response


def exception_errors(exc: MediaServiceError) -> Optional[Union[Dict[str, Any], List[Any]]]:
    """Client-safe itemized errors carried by a domain exception."""
    if isinstance(exc, MediaValidationError):
        return [
            issue.model_dump(mode="json") if hasattr(issue, "model_dump") else issue
            for issue in exc.issues
        ]
    if isinstance(exc, VariantGenerationError):
        return exc.tier_errors
    return None


def media_error_response(
    exc: MediaServiceError, correlation_id: Optional[str] = None
) -> JSONResponse:
    """Render a domain exception as the error envelope."""
    extra: Dict[str, Any] = {}
    if correlation_id:
        extra["correlation_id"] = correlation_id

    return JSONResponse(
        status_code=exc.status_code,
        content=ResponseFormatter.error(
            exc.message,
            error_code=exc.error_code,
            errors=exception_errors(exc),
            **extra,
        ),
    )
