# backend/listing_media/dependencies.py
"""
Dependency injection for routers.

The application factory builds one MediaService and one
ChunkedUploadService per app and stores them on app.state; routers receive
them through the annotated dependencies below.
"""

from typing import Annotated

from fastapi import Depends, Request

from .config import Settings
from .services.chunked_upload_service import ChunkedUploadService
from .services.media_service import MediaService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_media_service(request: Request) -> MediaService:
    return request.app.state.media_service


def get_chunked_upload_service(request: Request) -> ChunkedUploadService:
    return request.app.state.chunked_upload_service


SettingsDep = Annotated[Settings, Depends(get_settings)]
MediaServiceDep = Annotated[MediaService, Depends(get_media_service)]
ChunkedUploadServiceDep = Annotated[
    ChunkedUploadService, Depends(get_chunked_upload_service)
]
