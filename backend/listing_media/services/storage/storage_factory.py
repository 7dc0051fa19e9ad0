# backend/listing_media/services/storage/storage_factory.py
"""
Storage factory - builds the active backend for each media collection
from injected settings, refusing invalid Bunny configuration.
"""

from typing import Optional

import requests

from ...config import Settings
from ...enums import LogEmoji, LoggerName, LogSource, MediaKind, StorageDriver
from ...exceptions import ConfigurationError
from ..logger import get_service_logger
from .base_storage import StorageBackend
from .bunny_storage import BunnyStorage
from .local_storage import LocalStorage

logger = get_service_logger(LoggerName.STORAGE_SERVICE, LogSource.STORAGE)


def create_storage_backend(
    driver: StorageDriver,
    settings: Settings,
    session: Optional[requests.Session] = None,
) -> StorageBackend:
    """
    Create one storage backend.

    Raises:
        ConfigurationError: When the Bunny driver is selected without a zone,
            API key or CDN URL
    """
    if driver == StorageDriver.LOCAL:
        return LocalStorage(settings.public_storage_path, settings.public_base_url)

    if driver == StorageDriver.BUNNY:
        backend = BunnyStorage(
            storage_zone=settings.bunny_storage_zone,
            api_key=settings.bunny_api_key,
            cdn_url=settings.bunny_cdn_url,
            region=settings.bunny_region,
            region_hosts=settings.bunny_region_hosts,
            request_timeout=settings.storage_request_timeout,
            connect_timeout=settings.storage_connect_timeout,
            insecure_skip_verify=settings.bunny_insecure_skip_verify,
            session=session,
        )
        errors = backend.validate_config()
        if errors:
            raise ConfigurationError(
                "Invalid Bunny Storage configuration", details={"errors": errors}
            )
        return backend

    raise ConfigurationError(f"Unsupported storage driver: {driver}")


class StorageRegistry:
    """Active backend per media collection (images, videos)."""

    def __init__(self, images: StorageBackend, videos: StorageBackend):
        self.images = images
        self.videos = videos

    @classmethod
    def from_settings(
        cls, settings: Settings, session: Optional[requests.Session] = None
    ) -> "StorageRegistry":
        images = create_storage_backend(
            settings.image_storage_driver, settings, session
        )
        if settings.video_storage_driver == settings.image_storage_driver:
            videos = images
        else:
            videos = create_storage_backend(
                settings.video_storage_driver, settings, session
            )

        logger.info(
            "Storage backends configured",
            extra_context={
                "images": images.driver_name,
                "videos": videos.driver_name,
            },
            emoji=LogEmoji.STORAGE,
        )
        return cls(images=images, videos=videos)

    def for_kind(self, kind: MediaKind) -> StorageBackend:
        return self.images if kind == MediaKind.IMAGE else self.videos
