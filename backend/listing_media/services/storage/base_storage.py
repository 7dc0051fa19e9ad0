# backend/listing_media/services/storage/base_storage.py
"""
Base Storage Backend - Abstract interface for all storage writers.

Backends never raise for I/O or network failures: writes return a tagged
StorageWriteResult and the other operations return False / None so that
callers can decide how to report the failure.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ...models.media_model import FileInfo, StorageWriteResult


class StorageBackend(ABC):
    """Contract shared by the local disk and the Bunny CDN backends."""

    driver_name: str = "abstract"

    @abstractmethod
    def write(self, path: str, content: bytes, mime_type: str) -> StorageWriteResult:
        """Persist bytes at path, returning the public URL on success."""

    @abstractmethod
    def delete(self, path: str) -> bool:
        """Delete the file at path. False when it did not exist or failed."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        pass

    @abstractmethod
    def info(self, path: str) -> Optional[FileInfo]:
        """File metadata, or None when the file does not exist."""

    @abstractmethod
    def list_files(self, prefix: str) -> List[FileInfo]:
        """Files directly under the prefix directory (not recursive)."""

    @abstractmethod
    def public_url(self, path: str) -> str:
        pass

    def delete_many(self, paths: List[str]) -> List[str]:
        """
        Delete several files, returning the paths that could not be removed.
        """
        return [path for path in paths if not self.delete(path)]
