# backend/listing_media/services/storage/__init__.py
"""
Storage Writers

Local disk and Bunny CDN backends behind one StorageBackend contract.
"""

from .base_storage import StorageBackend
from .bunny_storage import BunnyStorage
from .local_storage import LocalStorage
from .storage_factory import StorageRegistry, create_storage_backend

__all__ = [
    "StorageBackend",
    "BunnyStorage",
    "LocalStorage",
    "StorageRegistry",
    "create_storage_backend",
]
