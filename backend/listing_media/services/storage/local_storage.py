# backend/listing_media/services/storage/local_storage.py
"""
Local Storage Backend - writes under the publicly served data directory.
"""

import mimetypes
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from ...enums import LogEmoji, LoggerName, LogSource, StorageDriver
from ...models.media_model import FileInfo, StorageWriteResult
from ...utils.file_helpers import (
    ensure_directory_exists,
    normalize_storage_path,
    validate_file_path,
)
from ..logger import get_service_logger
from .base_storage import StorageBackend

logger = get_service_logger(LoggerName.STORAGE_SERVICE, LogSource.STORAGE)


class LocalStorage(StorageBackend):
    """
    Disk storage rooted at a public directory.

    Writes go to a temporary file in the destination directory and are moved
    into place with os.replace, so readers never observe a partial file.
    Paths that resolve outside the root raise InvalidPathError.
    """

    driver_name = StorageDriver.LOCAL.value

    def __init__(self, root: Path, base_url: str):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def _full_path(self, path: str) -> Path:
        return validate_file_path(path, self.root)

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/{normalize_storage_path(path)}"

    def write(self, path: str, content: bytes, mime_type: str) -> StorageWriteResult:
        relative = normalize_storage_path(path)
        full_path = self._full_path(relative)
        tmp_name = None

        try:
            ensure_directory_exists(full_path.parent)
            fd, tmp_name = tempfile.mkstemp(
                dir=full_path.parent, prefix=".upload-", suffix=".tmp"
            )
            with os.fdopen(fd, "wb") as handle:
                handle.write(content)
            os.replace(tmp_name, full_path)
            tmp_name = None

            logger.debug(
                f"Stored {relative} ({len(content)} bytes)",
                extra_context={"mime_type": mime_type},
                emoji=LogEmoji.STORAGE,
            )
            return StorageWriteResult(
                success=True, path=relative, public_url=self.public_url(relative)
            )

        except OSError as e:
            logger.error(
                f"Local write failed for {relative}",
                exception=e,
                error_context={"path": relative, "size": len(content)},
            )
            return StorageWriteResult(
                success=False, path=relative, error="Failed to write file to storage"
            )
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

    def delete(self, path: str) -> bool:
        full_path = self._full_path(path)
        try:
            full_path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Local delete failed for {path}", exception=e)
            return False
        logger.debug(f"Deleted {path}", emoji=LogEmoji.DELETE)
        return True

    def exists(self, path: str) -> bool:
        return self._full_path(path).is_file()

    def read(self, path: str) -> Optional[bytes]:
        """Contents of a stored file, or None when it does not exist."""
        try:
            return self._full_path(path).read_bytes()
        except FileNotFoundError:
            return None

    def remove_directory(self, prefix: str) -> bool:
        """Delete a directory and everything below it."""
        directory = self._full_path(prefix)
        if not directory.is_dir():
            return False
        shutil.rmtree(directory)
        logger.debug(f"Removed directory {prefix}", emoji=LogEmoji.CLEANUP)
        return True

    def list_directories(self) -> List[str]:
        """Names of the directories directly under the root."""
        if not self.root.is_dir():
            return []
        return sorted(entry.name for entry in self.root.iterdir() if entry.is_dir())

    def _file_info(self, relative: str, full_path: Path) -> FileInfo:
        stat = full_path.stat()
        mime_type, _ = mimetypes.guess_type(full_path.name)
        return FileInfo(
            path=relative,
            url=self.public_url(relative),
            size=stat.st_size,
            mime_type=mime_type,
            last_modified=datetime.fromtimestamp(
                stat.st_mtime, tz=timezone.utc
            ).isoformat(),
        )

    def info(self, path: str) -> Optional[FileInfo]:
        relative = normalize_storage_path(path)
        full_path = self._full_path(relative)
        if not full_path.is_file():
            return None
        return self._file_info(relative, full_path)

    def list_files(self, prefix: str) -> List[FileInfo]:
        relative_dir = normalize_storage_path(prefix)
        directory = self._full_path(relative_dir)
        if not directory.is_dir():
            return []

        files = []
        for entry in sorted(directory.iterdir()):
            if entry.is_file() and not entry.name.startswith("."):
                files.append(self._file_info(f"{relative_dir}/{entry.name}", entry))
        return files
