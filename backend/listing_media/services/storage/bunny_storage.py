# backend/listing_media/services/storage/bunny_storage.py
"""
Bunny Storage Backend - CDN-backed object storage over authenticated HTTP.

Every request carries the static 'AccessKey' header and targets
'<region-host>/<zone>/<path>'. Network and HTTP failures are logged with
context and reported as failures; nothing is retried and nothing raises
past this class.
"""

from email.utils import parsedate_to_datetime
from typing import Dict, List, Optional

import requests

from ...enums import BunnyRegion, LogEmoji, LoggerName, LogSource, StorageDriver
from ...models.media_model import FileInfo, StorageWriteResult
from ...utils.file_helpers import normalize_storage_path
from ..logger import get_service_logger
from .base_storage import StorageBackend

logger = get_service_logger(LoggerName.STORAGE_SERVICE, LogSource.STORAGE)

DEFAULT_REGION = BunnyRegion.DE.value


class BunnyStorage(StorageBackend):
    """
    Bunny Storage API client.

    Args:
        storage_zone: Storage zone name
        api_key: Storage zone password, sent as 'AccessKey'
        cdn_url: Pull zone base URL used to build public URLs
        region: Region code looked up in region_hosts
        region_hosts: Region code to storage host mapping (must contain 'de')
        request_timeout: Read timeout in seconds
        connect_timeout: Connect timeout in seconds
        insecure_skip_verify: Disable TLS certificate verification
        session: Optional preconfigured requests session (tests)
    """

    driver_name = StorageDriver.BUNNY.value

    def __init__(
        self,
        storage_zone: str,
        api_key: str,
        cdn_url: str,
        region: str,
        region_hosts: Dict[str, str],
        request_timeout: float = 30.0,
        connect_timeout: float = 10.0,
        insecure_skip_verify: bool = False,
        session: Optional[requests.Session] = None,
    ):
        self.storage_zone = storage_zone
        self.api_key = api_key
        self.cdn_url = cdn_url
        self.region = region
        self.base_url = self._resolve_region_host(region, region_hosts)
        self.timeout = (connect_timeout, request_timeout)

        self.session = session or requests.Session()
        self.session.headers.update({"AccessKey": api_key})
        self.session.verify = not insecure_skip_verify

        if insecure_skip_verify:
            logger.warning(
                "TLS certificate verification is disabled for Bunny Storage",
                emoji=LogEmoji.SECURITY,
            )

    @staticmethod
    def _resolve_region_host(region: str, region_hosts: Dict[str, str]) -> str:
        if region in region_hosts:
            return region_hosts[region].rstrip("/")

        logger.warning(
            f"Unknown Bunny region '{region}', falling back to '{DEFAULT_REGION}'",
            extra_context={"known_regions": sorted(region_hosts)},
        )
        return region_hosts[DEFAULT_REGION].rstrip("/")

    def validate_config(self) -> List[str]:
        """Return human readable problems with the configuration."""
        errors = []
        if not self.storage_zone:
            errors.append("BUNNY_STORAGE_ZONE is not configured")
        if not self.api_key:
            errors.append("BUNNY_API_KEY is not configured")
        if not self.cdn_url:
            errors.append("BUNNY_CDN_URL is not configured")
        return errors

    def _object_url(self, path: str) -> str:
        return f"{self.base_url}/{self.storage_zone}/{path.lstrip('/')}"

    def public_url(self, path: str) -> str:
        return self.cdn_url.rstrip("/") + "/" + path.lstrip("/")

    def write(self, path: str, content: bytes, mime_type: str) -> StorageWriteResult:
        relative = normalize_storage_path(path)

        try:
            response = self.session.put(
                self._object_url(relative),
                data=content,
                headers={"Content-Type": mime_type or "application/octet-stream"},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(
                "Bunny Storage upload exception",
                exception=e,
                error_context={"path": relative, "zone": self.storage_zone},
            )
            return StorageWriteResult(
                success=False, path=relative, error="Storage service unreachable"
            )

        if 200 <= response.status_code < 300:
            logger.debug(
                f"Uploaded {relative} to Bunny Storage",
                extra_context={"size": len(content)},
                emoji=LogEmoji.STORAGE,
            )
            return StorageWriteResult(
                success=True, path=relative, public_url=self.public_url(relative)
            )

        logger.error(
            "Bunny Storage upload failed",
            error_context={
                "status": response.status_code,
                "body": response.text[:500],
                "path": relative,
            },
        )
        return StorageWriteResult(
            success=False,
            path=relative,
            error=f"Upload failed with status {response.status_code}",
        )

    def delete(self, path: str) -> bool:
        relative = normalize_storage_path(path)
        try:
            response = self.session.delete(
                self._object_url(relative), timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(
                "Bunny Storage delete exception",
                exception=e,
                error_context={"path": relative},
            )
            return False

        if response.ok:
            return True

        if response.status_code != 404:
            logger.error(
                "Bunny Storage delete failed",
                error_context={
                    "status": response.status_code,
                    "body": response.text[:500],
                    "path": relative,
                },
            )
        return False

    def _head(self, path: str) -> Optional[requests.Response]:
        try:
            return self.session.head(self._object_url(path), timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(
                "Bunny Storage HEAD request failed",
                exception=e,
                error_context={"path": path},
            )
            return None

    def exists(self, path: str) -> bool:
        response = self._head(normalize_storage_path(path))
        return response is not None and response.ok

    def info(self, path: str) -> Optional[FileInfo]:
        relative = normalize_storage_path(path)
        response = self._head(relative)
        if response is None or not response.ok:
            return None

        return FileInfo(
            path=relative,
            url=self.public_url(relative),
            size=int(response.headers.get("Content-Length", 0) or 0),
            mime_type=response.headers.get("Content-Type"),
            last_modified=self._parse_http_date(response.headers.get("Last-Modified")),
        )

    @staticmethod
    def _parse_http_date(value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        try:
            return parsedate_to_datetime(value).isoformat()
        except (TypeError, ValueError):
            return value

    def list_files(self, prefix: str) -> List[FileInfo]:
        relative_dir = normalize_storage_path(prefix)
        try:
            response = self.session.get(
                self._object_url(relative_dir) + "/",
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(
                "Bunny Storage listing exception",
                exception=e,
                error_context={"prefix": relative_dir},
            )
            return []

        if response.status_code == 404:
            return []
        if not response.ok:
            logger.error(
                "Bunny Storage listing failed",
                error_context={"status": response.status_code, "prefix": relative_dir},
            )
            return []

        try:
            entries = response.json()
        except ValueError as e:
            logger.error("Bunny Storage listing returned invalid JSON", exception=e)
            return []

        files = []
        for entry in entries:
            if entry.get("IsDirectory"):
                continue
            file_path = f"{relative_dir}/{entry.get('ObjectName', '')}"
            files.append(
                FileInfo(
                    path=file_path,
                    url=self.public_url(file_path),
                    size=int(entry.get("Length", 0) or 0),
                    mime_type=entry.get("ContentType") or None,
                    last_modified=entry.get("LastChanged"),
                )
            )
        return sorted(files, key=lambda item: item.path)
