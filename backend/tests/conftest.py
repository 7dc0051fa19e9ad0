#!/usr/bin/env python3
# backend/tests/conftest.py
"""
Pytest configuration and shared fixtures for listing media tests.
"""

import io
from typing import Optional

import pytest
from PIL import Image

from listing_media.config import Settings
from listing_media.services.chunked_upload_service import ChunkedUploadService
from listing_media.models.media_model import UploadedImage, UploadedMedia
from listing_media.services.image_pipeline import build_uploaded_image
from listing_media.services.media_service import MediaService
from listing_media.services.storage import LocalStorage, StorageRegistry
from listing_media.utils.cache_invalidation import CacheInvalidationService
from listing_media.utils.cache_manager import MemoryCache


def make_image_bytes(
    width: int = 640,
    height: int = 480,
    image_format: str = "JPEG",
    mode: str = "RGB",
    color=(120, 160, 200),
) -> bytes:
    """Encode a solid color test image."""
    if mode == "RGBA" and len(color) == 3:
        color = color + (128,)
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color).save(buffer, image_format)
    return buffer.getvalue()


def make_upload(
    content: Optional[bytes] = None,
    filename: str = "photo.jpg",
    mime_type: str = "image/jpeg",
) -> UploadedImage:
    return build_uploaded_image(
        content if content is not None else make_image_bytes(), filename, mime_type
    )


def make_video_upload(
    filename: str = "tour.mp4", mime_type: str = "video/mp4", size: int = 2048
) -> UploadedMedia:
    return UploadedMedia(
        content=b"\x00" * size,
        filename=filename,
        mime_type=mime_type,
        extension=filename.rsplit(".", 1)[-1].lower() if "." in filename else "",
        size=size,
    )


@pytest.fixture
def test_settings(tmp_path):
    """Settings isolated from the environment, storing under tmp_path."""
    return Settings(
        _env_file=None,
        environment="testing",
        data_directory=str(tmp_path / "data"),
        app_url="http://testserver",
    )


@pytest.fixture
async def fresh_cache():
    """Provide a fresh MemoryCache instance for each test."""
    cache = MemoryCache()
    yield cache
    await cache.clear()


@pytest.fixture
def cache_invalidation_service(fresh_cache):
    return CacheInvalidationService(fresh_cache)


@pytest.fixture
def local_storage(test_settings):
    return LocalStorage(test_settings.public_storage_path, test_settings.public_base_url)


@pytest.fixture
def storage_registry(local_storage):
    return StorageRegistry(images=local_storage, videos=local_storage)


@pytest.fixture
def media_service(test_settings, storage_registry, fresh_cache):
    return MediaService(test_settings, storage_registry, cache_instance=fresh_cache)


@pytest.fixture
def chunked_upload_service(test_settings, media_service):
    return ChunkedUploadService(test_settings, media_service)


@pytest.fixture
def jpeg_bytes():
    return make_image_bytes(3000, 2000)


@pytest.fixture
def sample_upload():
    return make_upload()


@pytest.fixture
def image_bytes_factory():
    return make_image_bytes


@pytest.fixture
def upload_factory():
    return make_upload


@pytest.fixture
def video_upload_factory():
    return make_video_upload
