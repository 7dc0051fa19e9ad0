#!/usr/bin/env python3
# backend/tests/unit/test_media_service.py
"""
Tests for the MediaService: uploads, capacity limits, caching, deletes,
videos and property purges against local storage.
"""

import asyncio
import base64
import threading
from unittest.mock import patch

import pytest

from listing_media.enums import MediaListingKind
from listing_media.exceptions import (
    DecodeError,
    InvalidPathError,
    MediaValidationError,
    NotFoundError,
    StorageError,
)
from listing_media.models.media_model import Base64ImageUploadRequest, StorageWriteResult


@pytest.mark.unit
class TestImageUploads:
    """Test single, batch and base64 image uploads."""

    async def test_upload_for_property(self, media_service, upload_factory):
        result = await media_service.upload_image(upload_factory(), property_id=12)

        assert len(result.variants) == 5
        assert all(v.path.startswith("properties/12/images/12_") for v in result.variants.values())
        assert await media_service.count_property_images(12) == 1

    async def test_concurrent_uploads_get_distinct_paths(self, media_service, upload_factory):
        first, second = await asyncio.gather(
            media_service.upload_image(upload_factory(), property_id=12),
            media_service.upload_image(upload_factory(), property_id=12),
        )

        first_paths = {v.path for v in first.variants.values()}
        second_paths = {v.path for v in second.variants.values()}
        assert first_paths.isdisjoint(second_paths)
        assert await media_service.count_property_images(12) == 2

    async def test_upload_to_folder(self, media_service, upload_factory):
        result = await media_service.upload_image(
            upload_factory(filename="Sunny Kitchen.jpg"), folder="../listings//2024"
        )

        full = result.variants["full"]
        assert full.path.startswith("listings/2024/sunny-kitchen_full_")

    async def test_upload_defaults_to_uploads_folder(self, media_service, upload_factory):
        result = await media_service.upload_image(upload_factory())

        assert result.variants["small"].path.startswith("uploads/photo_small_")

    async def test_property_capacity(self, media_service, test_settings, upload_factory):
        settings = test_settings.model_copy(update={"max_images_per_property": 2})
        media_service.settings = settings

        await media_service.upload_image(upload_factory(), property_id=3)
        await media_service.upload_image(upload_factory(), property_id=3)

        with pytest.raises(MediaValidationError) as exc_info:
            await media_service.upload_image(upload_factory(), property_id=3)
        assert exc_info.value.status_code == 422
        assert "at most 2 images" in exc_info.value.message

    async def test_batch_itemizes_failures(self, media_service, upload_factory):
        uploads = [
            upload_factory(filename="one.jpg"),
            upload_factory(b"x", filename="two.bmp", mime_type="image/bmp"),
            upload_factory(b"not an image", filename="three.jpg"),
        ]

        batch = await media_service.upload_images(uploads, property_id=5)

        assert batch.total_uploaded == 1
        assert [error.file for error in batch.errors] == ["two.bmp", "three.jpg"]
        assert batch.errors[0].details[0].code.value == "UNSUPPORTED_EXTENSION"
        assert batch.errors[1].error == "Uploaded file is not a valid image"
        response = batch.to_response()
        assert response["total_uploaded"] == 1 and response["total_errors"] == 2

    async def test_batch_limits(self, media_service, test_settings, upload_factory):
        with pytest.raises(MediaValidationError):
            await media_service.upload_images([])

        too_many = [upload_factory() for _ in range(test_settings.max_images_per_request + 1)]
        with pytest.raises(MediaValidationError):
            await media_service.upload_images(too_many)

    async def test_batch_respects_property_capacity(self, media_service, test_settings, upload_factory):
        media_service.settings = test_settings.model_copy(update={"max_images_per_property": 1})

        with pytest.raises(MediaValidationError):
            await media_service.upload_images([upload_factory(), upload_factory()], property_id=8)
        assert await media_service.count_property_images(8) == 0

    async def test_concurrent_batches_respect_property_capacity(
        self, media_service, test_settings, upload_factory
    ):
        media_service.settings = test_settings.model_copy(update={"max_images_per_property": 3})

        results = await asyncio.gather(
            media_service.upload_images([upload_factory(), upload_factory()], property_id=9),
            media_service.upload_images([upload_factory(), upload_factory()], property_id=9),
            return_exceptions=True,
        )

        assert sum(isinstance(result, MediaValidationError) for result in results) == 1
        assert await media_service.count_property_images(9) == 2

    async def test_concurrent_single_uploads_respect_property_capacity(
        self, media_service, test_settings, upload_factory
    ):
        media_service.settings = test_settings.model_copy(update={"max_images_per_property": 2})

        results = await asyncio.gather(
            *(media_service.upload_image(upload_factory(), property_id=4) for _ in range(3)),
            return_exceptions=True,
        )

        assert sum(isinstance(result, MediaValidationError) for result in results) == 1
        assert await media_service.count_property_images(4) == 2

    async def test_base64_upload(self, media_service, image_bytes_factory):
        payload = base64.b64encode(image_bytes_factory(100, 80, image_format="PNG")).decode()
        request = Base64ImageUploadRequest(
            image_data=f"data:image/png;base64,{payload}", property_id=4, filename="floor plan"
        )

        result = await media_service.upload_base64_image(request)

        assert result.original_name == "floorplan.png"
        assert result.mime_type == "image/png"
        assert (result.variants["full"].width, result.variants["full"].height) == (100, 80)

    async def test_base64_rejects_unknown_format(self, media_service):
        payload = base64.b64encode(b"GIF89a").decode()

        with pytest.raises(MediaValidationError):
            await media_service.upload_base64_image(
                Base64ImageUploadRequest(image_data=f"data:image/gif;base64,{payload}")
            )

    async def test_base64_rejects_malformed_data(self, media_service):
        with pytest.raises(DecodeError):
            await media_service.upload_base64_image(
                Base64ImageUploadRequest(image_data="data:image/png;base64,???")
            )


@pytest.mark.unit
class TestReadsAndDeletes:
    """Test cached reads and their invalidation."""

    async def test_image_info_is_cached_and_invalidated_on_delete(self, media_service, upload_factory, fresh_cache):
        result = await media_service.upload_image(upload_factory(), property_id=12)
        path = result.variants["medium"].path

        info = await media_service.get_image_info(path)
        assert info.path == path and info.size > 0
        assert (await fresh_cache.get_stats())["total_entries"] == 1

        await media_service.delete_image(path)

        assert (await fresh_cache.get_stats())["total_entries"] == 0
        with pytest.raises(NotFoundError):
            await media_service.get_image_info(path)

    async def test_delete_missing_image(self, media_service):
        with pytest.raises(NotFoundError):
            await media_service.delete_image("uploads/missing.webp")

    async def test_delete_image_removes_every_tier(self, media_service, upload_factory, local_storage):
        result = await media_service.upload_image(upload_factory(), property_id=3)
        kept = await media_service.upload_image(upload_factory(), property_id=3)

        response = await media_service.delete_image(result.variants["full"].path)

        assert sorted(response["deleted"]) == sorted(v.path for v in result.variants.values())
        remaining = {item.path for item in local_storage.list_files("properties/3/images")}
        assert remaining == {v.path for v in kept.variants.values()}
        assert await media_service.count_property_images(3) == 1

    async def test_delete_frees_property_capacity(self, media_service, test_settings, upload_factory):
        media_service.settings = test_settings.model_copy(update={"max_images_per_property": 1})
        result = await media_service.upload_image(upload_factory(), property_id=6)

        await media_service.delete_image(result.variants["thumbnail"].path)

        await media_service.upload_image(upload_factory(), property_id=6)
        assert await media_service.count_property_images(6) == 1

    async def test_delete_unmanaged_file_removes_only_that_file(self, media_service, local_storage):
        local_storage.write("uploads/legacy.webp", b"x", "image/webp")
        local_storage.write("uploads/other.webp", b"y", "image/webp")

        response = await media_service.delete_image("uploads/legacy.webp")

        assert response["deleted"] == ["uploads/legacy.webp"]
        assert local_storage.exists("uploads/other.webp")

    async def test_listing_overlapping_an_upload_is_not_cached(
        self, media_service, upload_factory, local_storage
    ):
        started = threading.Event()
        release = threading.Event()
        list_files = local_storage.list_files
        calls = []

        def slow_list_files(prefix):
            files = list_files(prefix)
            if not calls:
                calls.append(prefix)
                started.set()
                release.wait(5)
            return files

        loop = asyncio.get_running_loop()
        with patch.object(local_storage, "list_files", side_effect=slow_list_files):
            reader = asyncio.create_task(media_service.list_property_media(5))
            await loop.run_in_executor(None, started.wait, 5)
            await media_service.upload_image(upload_factory(), property_id=5)
            release.set()
            overlapped = await reader

        assert overlapped.images == []
        listing = await media_service.list_property_media(5)
        assert len(listing.images) == 5

    async def test_delete_rejects_traversal(self, media_service):
        with pytest.raises(InvalidPathError):
            await media_service.delete_image("../../etc/passwd")

    async def test_listing_is_invalidated_by_upload(self, media_service, upload_factory):
        empty = await media_service.list_property_media(12)
        assert empty.images == [] and empty.videos == []

        await media_service.upload_image(upload_factory(), property_id=12)

        listing = await media_service.list_property_media(12)
        assert len(listing.images) == 5
        assert listing.videos == []

        videos_only = await media_service.list_property_media(12, MediaListingKind.VIDEOS)
        assert videos_only.images == []

    async def test_upload_for_one_property_keeps_other_listings_cached(
        self, media_service, upload_factory, fresh_cache
    ):
        await media_service.list_property_media(1)
        await media_service.list_property_media(2)

        await media_service.upload_image(upload_factory(), property_id=1)

        assert (await fresh_cache.get_stats())["total_entries"] == 1

    async def test_clear_cache_expired_only(self, media_service, fresh_cache):
        await fresh_cache.set("file_info:stale", 1, ttl_seconds=-1)
        await media_service.list_property_media(7)

        assert await media_service.clear_cache(expired_only=True) == 1
        assert (await media_service.get_cache_stats())["total_entries"] == 1
        assert await media_service.clear_cache() == 1

    def test_property_id_from_path(self, media_service):
        assert media_service.property_id_from_path("properties/12/images/a.webp") == 12
        assert media_service.property_id_from_path("uploads/a.webp") is None
        assert media_service.property_id_from_path("properties/abc/images/a.webp") is None


@pytest.mark.unit
class TestVideos:
    """Test video storage and property purges."""

    async def test_upload_video(self, media_service, video_upload_factory, local_storage):
        result = await media_service.upload_video(video_upload_factory(), property_id=9)

        assert result.path.startswith("properties/9/videos/9_tour_")
        assert result.path.endswith(".mp4")
        assert local_storage.exists(result.path)

    async def test_invalid_video_is_a_400(self, media_service, video_upload_factory):
        with pytest.raises(MediaValidationError) as exc_info:
            await media_service.upload_video(
                video_upload_factory(filename="tour.exe", mime_type="application/octet-stream"), 9
            )

        assert exc_info.value.status_code == 400

    async def test_video_storage_failure(self, media_service, video_upload_factory, local_storage):
        failed = StorageWriteResult(success=False, path="x", error="disk full")
        with patch.object(local_storage, "write", return_value=failed):
            with pytest.raises(StorageError):
                await media_service.upload_video(video_upload_factory(), 9)

    async def test_video_batch_limit(self, media_service, video_upload_factory):
        with pytest.raises(MediaValidationError) as exc_info:
            await media_service.upload_videos([video_upload_factory(), video_upload_factory()], 9)

        assert exc_info.value.status_code == 400

    async def test_delete_video(self, media_service, video_upload_factory):
        result = await media_service.upload_video(video_upload_factory(), property_id=9)

        assert await media_service.delete_video(result.path) == {
            "path": result.path,
            "deleted": [result.path],
        }

    async def test_purge_property_media(self, media_service, upload_factory, video_upload_factory):
        await media_service.upload_image(upload_factory(), property_id=21)
        await media_service.upload_video(video_upload_factory(), property_id=21)
        await media_service.upload_image(upload_factory(), property_id=22)
        await media_service.list_property_media(21)

        result = await media_service.purge_property_media(21)

        assert result == {"property_id": 21, "deleted": 6, "failed": []}
        listing = await media_service.list_property_media(21)
        assert listing.images == [] and listing.videos == []
        assert await media_service.count_property_images(22) == 1
