# backend/listing_media/utils/file_helpers.py
"""
File Helpers - path security, name sanitization and unique filenames.

Shared by the storage backends, the image pipeline and the routers so
every path that reaches a disk or a CDN zone goes through the same checks.
"""

import re
import secrets
import string
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Iterable, Optional

from ..enums import LogEmoji, LoggerName, LogSource
from ..exceptions import InvalidPathError
from ..services.logger import get_service_logger

logger = get_service_logger(LoggerName.STORAGE_SERVICE, LogSource.STORAGE)

DEFAULT_UPLOAD_FOLDER = "uploads"
UNIQUE_SUFFIX_LENGTH = 8
_RANDOM_ALPHABET = string.ascii_letters + string.digits

_FOLDER_DISALLOWED = re.compile(r"[^a-zA-Z0-9/\-_]")
_FILENAME_DISALLOWED = re.compile(r"[^a-zA-Z0-9\-_.]")
_SLUG_DISALLOWED = re.compile(r"[^a-z0-9]+")


def get_extension(filename: str) -> str:
    """Lower-cased extension without the dot, or '' when there is none."""
    suffix = PurePosixPath(filename or "").suffix
    return suffix[1:].lower() if suffix else ""


def slugify(value: str, fallback: str = "file") -> str:
    """
    Reduce a name to a lower-case, dash separated slug.

    Args:
        value: Text to slugify (typically a filename stem)
        fallback: Slug returned when nothing usable remains

    Returns:
        Slug containing only [a-z0-9-]
    """
    slug = _SLUG_DISALLOWED.sub("-", (value or "").lower()).strip("-")
    return slug or fallback


def sanitize_folder(folder: Optional[str], default: str = DEFAULT_UPLOAD_FOLDER) -> str:
    """Keep [a-zA-Z0-9/-_], drop '..' and surrounding slashes."""
    if not folder:
        return default
    cleaned = _FOLDER_DISALLOWED.sub("", folder).replace("..", "")
    cleaned = re.sub(r"/{2,}", "/", cleaned).strip("/")
    return cleaned or default


def sanitize_filename(filename: str) -> str:
    """Keep [a-zA-Z0-9-_.] only."""
    cleaned = _FILENAME_DISALLOWED.sub("", filename or "")
    cleaned = cleaned.lstrip(".")
    return cleaned or "unknown"


def has_dangerous_extension(filename: str, dangerous: Iterable[str]) -> bool:
    """
    Check every dot-separated segment after the first one, so that names
    like 'photo.php.jpg' are caught as well as 'shell.php'.
    """
    blocked = {ext.lower() for ext in dangerous}
    segments = (filename or "").lower().split(".")[1:]
    return any(segment in blocked for segment in segments)


def generate_unique_token(now: Optional[datetime] = None) -> str:
    """
    Build the '<YYYYMMDDHHMMSS>_<microseconds>_<random8>' token that makes
    stored names collision resistant.
    """
    now = now or datetime.now()
    random_part = "".join(
        secrets.choice(_RANDOM_ALPHABET) for _ in range(UNIQUE_SUFFIX_LENGTH)
    )
    return f"{now.strftime('%Y%m%d%H%M%S')}_{now.microsecond:06d}_{random_part}"


def generate_unique_filename(
    original_name: str,
    extension: Optional[str] = None,
    prefix: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Generate '<prefix_><slug>_<YYYYMMDDHHMMSS>_<micro>_<rand8>.<ext>'.

    Args:
        original_name: Client supplied filename, slugified
        extension: Extension to use (defaults to the original's)
        prefix: Optional prefix, e.g. a property id
        now: Timestamp override for deterministic tests

    Returns:
        Unique filename (no directory component)
    """
    stem = PurePosixPath(original_name or "").stem
    ext = (extension or get_extension(original_name)).lower().lstrip(".")
    name = f"{slugify(stem)}_{generate_unique_token(now)}"
    if prefix:
        name = f"{slugify(str(prefix))}_{name}"
    return f"{name}.{ext}" if ext else name


def normalize_storage_path(path: str) -> str:
    """
    Normalize a relative storage path and refuse traversal.

    Raises:
        InvalidPathError: For empty paths or paths containing '..' segments
    """
    normalized = (path or "").replace("\\", "/").strip().lstrip("/")
    parts = [part for part in normalized.split("/") if part not in ("", ".")]
    if not parts or any(part == ".." for part in parts):
        logger.warning(
            f"Rejected storage path: {path!r}",
            emoji=LogEmoji.SECURITY,
            extra_context={"security_violation": "path_traversal"},
        )
        raise InvalidPathError("Invalid file path")
    return "/".join(parts)


def validate_file_path(file_path: str, base_directory: Path) -> Path:
    """
    Resolve a relative storage path under base_directory.

    Raises:
        InvalidPathError: If the resolved path escapes base_directory
    """
    relative = normalize_storage_path(file_path)
    base_path = Path(base_directory).resolve()
    full_path = (base_path / relative).resolve()

    try:
        full_path.relative_to(base_path)
    except ValueError:
        logger.warning(
            f"Path traversal attempt detected: {file_path}",
            emoji=LogEmoji.SECURITY,
            extra_context={
                "file_path": file_path,
                "security_violation": "path_traversal",
            },
        )
        raise InvalidPathError("Invalid file path")

    return full_path


def ensure_directory_exists(directory_path: Path) -> Path:
    directory_path.mkdir(parents=True, exist_ok=True)
    return directory_path


def property_media_prefix(root: str, property_id: int, kind: str) -> str:
    """Storage prefix for one property's media, e.g. 'properties/12/images'."""
    return f"{root.strip('/')}/{property_id}/{kind}"
