# backend/listing_media/services/media_service.py
"""
Media Service - Composition-based orchestration of property media.

Ties the image pipeline, the storage backends and the cache together:
uploads (single, batch, base64), video uploads, deletes, info lookups,
per-property listings and cascade purges. Decode/resize/encode work and
storage calls are synchronous and run in the default executor so the event
loop stays responsive.
"""

import asyncio
import functools
import re
from pathlib import PurePosixPath
from typing import Any, Callable, Dict, List, Optional

from ..config import Settings
from ..enums import (
    LogEmoji,
    LoggerName,
    LogSource,
    MediaKind,
    MediaListingKind,
    ValidationErrorCode,
)
from ..exceptions import (
    MediaServiceError,
    MediaValidationError,
    NotFoundError,
    StorageError,
)
from ..models.media_model import (
    Base64ImageUploadRequest,
    BatchItemError,
    BatchUploadResult,
    FileInfo,
    PropertyMediaListing,
    UploadedImage,
    UploadedImageResult,
    UploadedMedia,
    UploadedVideoResult,
    ValidationIssue,
)
from ..utils.cache_invalidation import CacheInvalidationService
from ..utils.cache_manager import (
    MemoryCache,
    build_filter_cache_key,
    cache,
    path_tag,
    property_tag,
)
from ..utils.file_helpers import (
    generate_unique_filename,
    get_extension,
    normalize_storage_path,
    property_media_prefix,
    sanitize_filename,
    sanitize_folder,
    slugify,
)
from .image_pipeline import ImagePipeline, build_uploaded_image, parse_data_uri
from .image_pipeline.validators import UploadValidator
from .logger import get_service_logger
from .storage import StorageBackend, StorageRegistry

logger = get_service_logger(LoggerName.MEDIA_SERVICE, LogSource.API)

IMAGES_DIRECTORY = "images"
VIDEOS_DIRECTORY = "videos"

# Trailing '_<YYYYMMDDHHMMSS>_<micro>_<rand8>' shared by every tier of an upload
VARIANT_TOKEN_PATTERN = re.compile(r"_\d{14}_\d{6}_[A-Za-z0-9]{8}$")


class MediaService:
    """
    Property media business logic.

    Args:
        settings: Injected settings (limits, tiers, TTLs)
        storage: Active backend per media collection
        cache_instance: Cache used for reads (defaults to the global cache)
        pipeline: Image pipeline (defaults to one over storage.images)
    """

    def __init__(
        self,
        settings: Settings,
        storage: StorageRegistry,
        cache_instance: Optional[MemoryCache] = None,
        pipeline: Optional[ImagePipeline] = None,
    ):
        self.settings = settings
        self.storage = storage
        self.cache = cache_instance or cache
        self.invalidation = CacheInvalidationService(self.cache)
        self.pipeline = pipeline or ImagePipeline(settings, storage.images)
        self.validator: UploadValidator = self.pipeline.validator
        self._property_locks: Dict[int, asyncio.Lock] = {}

    async def _run_sync(self, func: Callable[..., Any], *args: Any) -> Any:
        return await asyncio.get_event_loop().run_in_executor(
            None, functools.partial(func, *args)
        )

    # ════════════════════════════════════════════════════════════════════
    # Paths
    # ════════════════════════════════════════════════════════════════════

    def _property_prefix(self, property_id: int, kind: MediaKind) -> str:
        directory = IMAGES_DIRECTORY if kind == MediaKind.IMAGE else VIDEOS_DIRECTORY
        return property_media_prefix(
            self.settings.media_root_path, property_id, directory
        )

    def _image_collection(
        self, property_id: Optional[int], folder: Optional[str]
    ) -> str:
        if property_id is not None:
            return self._property_prefix(property_id, MediaKind.IMAGE)
        return sanitize_folder(folder)

    def property_id_from_path(self, path: str) -> Optional[int]:
        """Owning property of a stored path, when it lives under the media root."""
        parts = path.strip("/").split("/")
        root = self.settings.media_root_path.strip("/")
        if len(parts) >= 3 and parts[0] == root and parts[1].isdigit():
            return int(parts[1])
        return None

    @staticmethod
    def _image_group_key(path: str) -> str:
        # '<prefix>_<tier>_<YmdHis>_<micro>_<rand8>.<ext>' -> shared token
        return "_".join(PurePosixPath(path).stem.split("_")[-3:])

    # ════════════════════════════════════════════════════════════════════
    # Images
    # ════════════════════════════════════════════════════════════════════

    async def count_property_images(self, property_id: int) -> int:
        """Number of distinct uploaded images (variant sets) of a property."""
        files = await self._run_sync(
            self.storage.images.list_files,
            self._property_prefix(property_id, MediaKind.IMAGE),
        )
        return len({self._image_group_key(item.path) for item in files})

    def _property_lock(self, property_id: int) -> asyncio.Lock:
        # Serializes the capacity check and the writes of one property
        return self._property_locks.setdefault(property_id, asyncio.Lock())

    async def _ensure_property_capacity(self, property_id: int, incoming: int) -> None:
        existing = await self.count_property_images(property_id)
        limit = self.settings.max_images_per_property
        if existing + incoming > limit:
            raise MediaValidationError(
                f"A property can have at most {limit} images "
                f"({existing} already uploaded)",
                status_code=422,
            )

    async def upload_image(
        self,
        upload: UploadedImage,
        property_id: Optional[int] = None,
        folder: Optional[str] = None,
    ) -> UploadedImageResult:
        """
        Validate, generate and store every quality tier of one image.

        Raises:
            MediaValidationError: Fatal validation issues or property full
            DecodeError: Not a decodable image
            VariantGenerationError: A tier failed; nothing was kept
        """
        if property_id is not None:
            async with self._property_lock(property_id):
                await self._ensure_property_capacity(property_id, 1)
                return await self._store_image(upload, property_id, folder)

        return await self._store_image(upload, property_id, folder)

    async def _store_image(
        self,
        upload: UploadedImage,
        property_id: Optional[int],
        folder: Optional[str],
    ) -> UploadedImageResult:
        collection = self._image_collection(property_id, folder)
        name_prefix = (
            str(property_id)
            if property_id is not None
            else slugify(PurePosixPath(upload.filename).stem, fallback="image")
        )

        result: UploadedImageResult = await self._run_sync(
            self.pipeline.process, upload, collection, name_prefix
        )

        await self.invalidation.invalidate_after_write(
            property_id, [variant.path for variant in result.variants.values()]
        )
        return result

    async def upload_images(
        self,
        uploads: List[UploadedImage],
        property_id: Optional[int] = None,
        folder: Optional[str] = None,
    ) -> BatchUploadResult:
        """
        Upload several images, itemizing successes and failures.

        Raises:
            MediaValidationError: Empty batch, too many files, or property full
        """
        if not uploads:
            raise MediaValidationError("No images provided", status_code=422)

        limit = self.settings.max_images_per_request
        if len(uploads) > limit:
            raise MediaValidationError(
                f"At most {limit} images can be uploaded per request",
                status_code=422,
            )

        if property_id is None:
            batch = await self._store_batch(uploads, None, folder)
        else:
            async with self._property_lock(property_id):
                await self._ensure_property_capacity(property_id, len(uploads))
                batch = await self._store_batch(uploads, property_id, folder)

        logger.info(
            f"Batch upload finished: {batch.total_uploaded} uploaded, "
            f"{batch.total_errors} failed",
            extra_context={"property_id": property_id},
            emoji=LogEmoji.UPLOAD,
        )
        return batch

    async def _store_batch(
        self,
        uploads: List[UploadedImage],
        property_id: Optional[int],
        folder: Optional[str],
    ) -> BatchUploadResult:
        batch = BatchUploadResult()
        for upload in uploads:
            try:
                batch.uploaded.append(
                    await self._store_image(upload, property_id, folder)
                )
            except MediaValidationError as e:
                batch.errors.append(
                    BatchItemError(file=upload.filename, error=e.message, details=e.issues)
                )
            except MediaServiceError as e:
                batch.errors.append(BatchItemError(file=upload.filename, error=e.message))
        return batch

    async def upload_base64_image(
        self, request: Base64ImageUploadRequest
    ) -> UploadedImageResult:
        """
        Upload an image sent as a 'data:image/<fmt>;base64,' URI.

        Raises:
            DecodeError: Malformed URI or payload
            MediaValidationError: Format not allowed
        """
        image_format, content = parse_data_uri(request.image_data)

        if image_format not in self.settings.image_allowed_extensions:
            raise MediaValidationError(
                "Validation failed",
                issues=[
                    ValidationIssue(
                        code=ValidationErrorCode.UNSUPPORTED_EXTENSION,
                        message=f"Image format '{image_format}' not allowed",
                        field="image_data",
                    )
                ],
            )

        filename = (
            sanitize_filename(request.filename) if request.filename else "image"
        )
        if not get_extension(filename):
            filename = f"{filename}.{image_format}"

        mime_type = f"image/{'jpeg' if image_format == 'jpg' else image_format}"
        upload = build_uploaded_image(content, filename, mime_type)
        return await self.upload_image(upload, request.property_id, request.folder)

    async def _variant_set_paths(self, backend: StorageBackend, relative: str) -> List[str]:
        """Every stored tier of the upload relative belongs to, relative included."""
        path = PurePosixPath(relative)
        if str(path.parent) == "." or not VARIANT_TOKEN_PATTERN.search(path.stem):
            return [relative]

        token = self._image_group_key(relative)
        siblings = await self._run_sync(backend.list_files, str(path.parent))
        paths = [
            item.path
            for item in siblings
            if VARIANT_TOKEN_PATTERN.search(PurePosixPath(item.path).stem)
            and self._image_group_key(item.path) == token
        ]
        if relative not in paths:
            paths.append(relative)
        return paths

    async def _delete(
        self, backend: StorageBackend, path: str, whole_variant_set: bool = False
    ) -> Dict[str, Any]:
        relative = normalize_storage_path(path)
        exists = await self._run_sync(backend.exists, relative)
        if not exists:
            raise NotFoundError("File not found")

        paths = [relative]
        if whole_variant_set:
            paths = await self._variant_set_paths(backend, relative)

        leftovers = await self._run_sync(backend.delete_many, paths)
        await self.invalidation.invalidate_after_write(
            self.property_id_from_path(relative), paths
        )
        if leftovers:
            logger.error(
                f"Could not delete {len(leftovers)} of {len(paths)} files",
                error_context={"path": relative, "failed_paths": leftovers},
            )
            raise StorageError("Failed to delete file")

        logger.info(
            f"Deleted {relative}",
            extra_context={"files_removed": len(paths)},
            emoji=LogEmoji.DELETE,
        )
        return {"path": relative, "deleted": paths}

    async def delete_image(self, path: str) -> Dict[str, Any]:
        """
        Delete a stored image together with every other tier of the same
        upload. NotFoundError when the given path does not exist.
        """
        return await self._delete(self.storage.images, path, whole_variant_set=True)

    async def get_image_info(self, path: str) -> FileInfo:
        """
        Metadata of one stored image, cached and tagged by path.

        Raises:
            NotFoundError: When the file does not exist
        """
        relative = normalize_storage_path(path)
        tags = [path_tag(relative)]
        property_id = self.property_id_from_path(relative)
        if property_id is not None:
            tags.append(property_tag(property_id))

        async def compute() -> Optional[Dict[str, Any]]:
            info = await self._run_sync(self.storage.images.info, relative)
            return info.model_dump() if info is not None else None

        data = await self.cache.get_or_compute(
            build_filter_cache_key("file_info", {"path": relative}),
            self.settings.media_cache_ttl_seconds,
            compute,
            tags=tags,
        )
        if data is None:
            raise NotFoundError("File not found")
        return FileInfo(**data)

    # ════════════════════════════════════════════════════════════════════
    # Videos
    # ════════════════════════════════════════════════════════════════════

    async def upload_video(
        self, upload: UploadedMedia, property_id: int
    ) -> UploadedVideoResult:
        """
        Store a video unchanged under the property's videos directory.

        Raises:
            MediaValidationError: Fatal validation issues (HTTP 400)
            StorageError: The storage write failed
        """
        issues = self.validator.validate(upload, MediaKind.VIDEO)
        if UploadValidator.fatal_issues(issues):
            raise MediaValidationError(
                "Validation failed", issues=issues, status_code=400
            )

        filename = generate_unique_filename(upload.filename, prefix=str(property_id))
        path = f"{self._property_prefix(property_id, MediaKind.VIDEO)}/{filename}"

        result = await self._run_sync(
            self.storage.videos.write, path, upload.content, upload.mime_type
        )
        if not result.success:
            raise StorageError("Failed to upload video")

        await self.invalidation.invalidate_after_write(property_id, [result.path])
        logger.info(
            f"Stored video {upload.filename} for property {property_id}",
            extra_context={"path": result.path, "size": upload.size},
            emoji=LogEmoji.VIDEO,
        )
        return UploadedVideoResult(
            original_name=upload.filename,
            path=result.path,
            url=result.public_url or self.storage.videos.public_url(result.path),
            mime_type=upload.mime_type,
            size=upload.size,
        )

    async def upload_videos(
        self, uploads: List[UploadedMedia], property_id: int
    ) -> BatchUploadResult:
        if not uploads:
            raise MediaValidationError("No videos provided", status_code=400)

        limit = self.settings.max_videos_per_request
        if len(uploads) > limit:
            raise MediaValidationError(
                f"At most {limit} video(s) can be uploaded per request",
                status_code=400,
            )

        batch = BatchUploadResult()
        for upload in uploads:
            try:
                batch.uploaded.append(await self.upload_video(upload, property_id))
            except MediaValidationError as e:
                batch.errors.append(
                    BatchItemError(file=upload.filename, error=e.message, details=e.issues)
                )
            except MediaServiceError as e:
                batch.errors.append(BatchItemError(file=upload.filename, error=e.message))
        return batch

    async def delete_video(self, path: str) -> Dict[str, Any]:
        return await self._delete(self.storage.videos, path)

    # ════════════════════════════════════════════════════════════════════
    # Property media
    # ════════════════════════════════════════════════════════════════════

    async def list_property_media(
        self, property_id: int, kind: MediaListingKind = MediaListingKind.ALL
    ) -> PropertyMediaListing:
        """Cached listing of a property's stored images and/or videos."""

        async def compute() -> Dict[str, Any]:
            images: List[FileInfo] = []
            videos: List[FileInfo] = []
            if kind in (MediaListingKind.IMAGES, MediaListingKind.ALL):
                images = await self._run_sync(
                    self.storage.images.list_files,
                    self._property_prefix(property_id, MediaKind.IMAGE),
                )
            if kind in (MediaListingKind.VIDEOS, MediaListingKind.ALL):
                videos = await self._run_sync(
                    self.storage.videos.list_files,
                    self._property_prefix(property_id, MediaKind.VIDEO),
                )
            return PropertyMediaListing(
                property_id=property_id, images=images, videos=videos
            ).model_dump()

        data = await self.cache.get_or_compute(
            build_filter_cache_key(
                "property_media", {"property_id": property_id, "kind": kind.value}
            ),
            self.settings.listing_cache_ttl_seconds,
            compute,
            tags=[property_tag(property_id)],
        )
        return PropertyMediaListing(**data)

    async def purge_property_media(self, property_id: int) -> Dict[str, Any]:
        """
        Delete every stored image and video of a property.

        Returns:
            Dict with the deleted count and any paths that could not be removed
        """
        deleted = 0
        failed: List[str] = []

        for kind in (MediaKind.IMAGE, MediaKind.VIDEO):
            backend = self.storage.for_kind(kind)
            files = await self._run_sync(
                backend.list_files, self._property_prefix(property_id, kind)
            )
            paths = [item.path for item in files]
            leftovers = await self._run_sync(backend.delete_many, paths)
            deleted += len(paths) - len(leftovers)
            failed.extend(leftovers)

        await self.invalidation.invalidate_property_media(property_id)

        if failed:
            logger.error(
                f"Could not delete {len(failed)} files of property {property_id}",
                error_context={"failed_paths": failed},
            )
        else:
            logger.info(
                f"Purged {deleted} media files of property {property_id}",
                emoji=LogEmoji.CLEANUP,
            )
        return {"property_id": property_id, "deleted": deleted, "failed": failed}

    # ════════════════════════════════════════════════════════════════════
    # Cache administration
    # ════════════════════════════════════════════════════════════════════

    async def get_cache_stats(self) -> Dict[str, Any]:
        return await self.cache.get_stats()

    async def clear_cache(self, expired_only: bool = False) -> int:
        if expired_only:
            return await self.cache.cleanup_expired()
        return await self.invalidation.flush_all()
