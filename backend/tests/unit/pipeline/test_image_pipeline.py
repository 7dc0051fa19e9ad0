#!/usr/bin/env python3
# backend/tests/unit/pipeline/test_image_pipeline.py
"""
Tests for the ImagePipeline: complete variant sets or nothing at all.
"""

import re

import pytest

from listing_media.enums import ValidationErrorCode
from listing_media.exceptions import MediaValidationError, VariantGenerationError
from listing_media.models.media_model import StorageWriteResult
from listing_media.services.image_pipeline import ImagePipeline
from listing_media.services.storage import LocalStorage

VARIANT_NAME = re.compile(
    r"^properties/12/images/12_(?P<tier>[a-z]+)_(?P<token>\d{14}_\d{6}_[A-Za-z0-9]{8})\.(webp|jpg)$"
)


class FailingLocalStorage(LocalStorage):
    """Local storage whose Nth write fails."""

    def __init__(self, root, base_url, fail_on: int):
        super().__init__(root, base_url)
        self.fail_on = fail_on
        self.writes = 0

    def write(self, path, content, mime_type):
        self.writes += 1
        if self.writes == self.fail_on:
            return StorageWriteResult(success=False, path=path, error="Upload failed with status 500")
        return super().write(path, content, mime_type)


def _stored_files(root):
    return [p for p in root.rglob("*") if p.is_file()] if root.exists() else []


@pytest.mark.unit
@pytest.mark.pipeline
class TestImagePipeline:
    """Test validation, generation and storage as one step."""

    def test_process_stores_every_tier(self, test_settings, local_storage, upload_factory, jpeg_bytes):
        pipeline = ImagePipeline(test_settings, local_storage)

        result = pipeline.process(upload_factory(jpeg_bytes), "properties/12/images", "12")

        assert set(result.variants) == set(test_settings.image_quality_tiers)
        tokens = set()
        for tier_name, variant in result.variants.items():
            match = VARIANT_NAME.match(variant.path)
            assert match, variant.path
            assert match.group("tier") == tier_name
            tokens.add(match.group("token"))
            assert local_storage.exists(variant.path)
            assert variant.url.endswith(variant.path)
        assert len(tokens) == 1
        assert result.warnings == []

    def test_validation_failure_writes_nothing(self, test_settings, local_storage, upload_factory):
        pipeline = ImagePipeline(test_settings, local_storage)
        upload = upload_factory(b"not checked", "photo.bmp", "image/bmp")

        with pytest.raises(MediaValidationError) as exc_info:
            pipeline.process(upload, "uploads", "photo")

        codes = {issue.code for issue in exc_info.value.issues}
        assert codes == {
            ValidationErrorCode.UNSUPPORTED_EXTENSION,
            ValidationErrorCode.UNSUPPORTED_MIME_TYPE,
        }
        assert _stored_files(local_storage.root) == []

    def test_failed_write_rolls_back_written_variants(self, test_settings, upload_factory, jpeg_bytes):
        storage = FailingLocalStorage(
            test_settings.public_storage_path, test_settings.public_base_url, fail_on=3
        )
        pipeline = ImagePipeline(test_settings, storage)

        with pytest.raises(VariantGenerationError) as exc_info:
            pipeline.process(upload_factory(jpeg_bytes), "properties/12/images", "12")

        assert list(exc_info.value.tier_errors.values()) == ["Upload failed with status 500"]
        assert storage.writes == 3
        assert _stored_files(storage.root) == []

    def test_first_write_failure_leaves_nothing(self, test_settings, upload_factory, jpeg_bytes):
        storage = FailingLocalStorage(
            test_settings.public_storage_path, test_settings.public_base_url, fail_on=1
        )
        pipeline = ImagePipeline(test_settings, storage)

        with pytest.raises(VariantGenerationError):
            pipeline.process(upload_factory(jpeg_bytes), "uploads", "photo")

        assert _stored_files(storage.root) == []

    def test_oversized_dimensions_become_warnings(self, test_settings, local_storage, upload_factory, image_bytes_factory):
        settings = test_settings.model_copy(update={"image_max_width": 100, "image_max_height": 100})
        pipeline = ImagePipeline(settings, local_storage)

        result = pipeline.process(upload_factory(image_bytes_factory(400, 300)), "uploads", "photo")

        assert [w.code for w in result.warnings] == [ValidationErrorCode.DIMENSIONS_TOO_LARGE]
        assert len(result.variants) == len(settings.image_quality_tiers)

    def test_tiers_follow_settings(self, test_settings, local_storage, upload_factory, jpeg_bytes):
        tiers = {"thumbnail": test_settings.image_quality_tiers["thumbnail"]}
        settings = test_settings.model_copy(update={"image_quality_tiers": tiers})
        pipeline = ImagePipeline(settings, local_storage)

        result = pipeline.process(upload_factory(jpeg_bytes), "uploads", "photo")

        assert list(result.variants) == ["thumbnail"]
