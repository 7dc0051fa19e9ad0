# backend/listing_media/utils/router_helpers.py
"""
Router Helper Functions

Common decorators and upload adapters for FastAPI routers.
"""

from functools import wraps
from typing import Callable, List, Tuple

from fastapi import HTTPException, UploadFile

from ..enums import LogEmoji, LoggerName, LogSource
from ..exceptions import MediaServiceError
from ..models.media_model import UploadedImage, UploadedMedia
from ..services.image_pipeline import build_uploaded_image
from ..services.logger import get_service_logger
from .file_helpers import get_extension

logger = get_service_logger(LoggerName.ROUTER, LogSource.API)

UPLOAD_READ_CHUNK_SIZE = 1024 * 1024


def handle_exceptions(operation_name: str):
    """
    Decorator for standardized exception handling in router endpoints.

    Domain exceptions and HTTP exceptions pass through to the registered
    exception handlers; anything else is logged and turned into a generic
    500 so internal details never reach the client.

    Usage:
        @handle_exceptions("upload image")
        async def upload_image(...):
            ...
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except (HTTPException, MediaServiceError):
                raise
            except Exception as e:
                logger.error(f"Error during {operation_name}", exception=e)
                raise HTTPException(
                    status_code=500, detail=f"Failed to {operation_name}"
                )

        return wrapper

    return decorator


async def read_limited(file: UploadFile, max_size: int) -> Tuple[bytes, int]:
    """
    Read an upload without buffering more than max_size + 1 bytes.

    Returns:
        (content, size). For a file over the limit the content is empty and
        size is greater than max_size, which the validator reports as
        FILE_TOO_LARGE.
    """
    if file.size is not None and file.size > max_size:
        return b"", file.size

    buffer = bytearray()
    while True:
        chunk = await file.read(min(UPLOAD_READ_CHUNK_SIZE, max_size + 1 - len(buffer)))
        if not chunk:
            break
        buffer.extend(chunk)
        if len(buffer) > max_size:
            logger.warning(
                f"Upload '{file.filename}' exceeds {max_size} bytes, rest not read",
                emoji=LogEmoji.SECURITY,
            )
            return b"", len(buffer)

    return bytes(buffer), len(buffer)


async def read_image_upload(file: UploadFile, max_size: int) -> UploadedImage:
    content, size = await read_limited(file, max_size)
    return build_uploaded_image(
        content, file.filename or "", file.content_type, size=size
    )


async def read_media_upload(file: UploadFile, max_size: int) -> UploadedMedia:
    content, size = await read_limited(file, max_size)
    filename = file.filename or ""
    return UploadedMedia(
        content=content,
        filename=filename,
        mime_type=(file.content_type or "").lower(),
        extension=get_extension(filename),
        size=size,
    )


async def read_image_uploads(files: List[UploadFile], max_size: int) -> List[UploadedImage]:
    return [await read_image_upload(file, max_size) for file in files]
