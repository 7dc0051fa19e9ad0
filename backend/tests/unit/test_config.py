#!/usr/bin/env python3
# backend/tests/unit/test_config.py
"""
Tests for settings defaults and validators.
"""

import pytest
from pydantic import ValidationError

from listing_media.config import Settings
from listing_media.enums import ImageFormat, LogLevel, StorageDriver
from listing_media.models.media_model import QualityTier


def _settings(**overrides):
    return Settings(_env_file=None, **overrides)


@pytest.mark.unit
class TestSettingsDefaults:
    def test_quality_tiers(self):
        tiers = {tier.name: tier for tier in _settings().get_quality_tiers()}

        assert list(tiers) == ["full", "large", "medium", "thumbnail", "small"]
        assert (tiers["full"].width, tiers["full"].height, tiers["full"].quality) == (1200, 800, 90)
        assert (tiers["thumbnail"].width, tiers["thumbnail"].height) == (400, 300)
        assert tiers["thumbnail"].aspect == "4:3"
        assert all(tier.format == ImageFormat.WEBP for tier in tiers.values())

    def test_limits(self):
        settings = _settings()

        assert settings.image_max_size_bytes == 5 * 1024 * 1024
        assert settings.max_images_per_request == 10
        assert settings.max_images_per_property == 20
        assert settings.bunny_insecure_skip_verify is False
        assert settings.image_storage_driver == StorageDriver.LOCAL

    def test_paths(self, tmp_path):
        settings = _settings(data_directory=str(tmp_path), app_url="https://media.example.com/")

        assert settings.public_storage_path == tmp_path / "public"
        assert settings.public_base_url == "https://media.example.com/storage"

        settings.ensure_directories()
        assert (tmp_path / "public").is_dir()
        assert (tmp_path / "logs").is_dir()
        assert (tmp_path / "chunked-uploads").is_dir()


@pytest.mark.unit
class TestSettingsValidators:
    def test_log_level_is_case_insensitive(self):
        assert _settings(log_level="debug").log_level == LogLevel.DEBUG

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            _settings(log_level="chatty")

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            _settings(environment="qa")

    def test_cors_origins_from_string(self):
        settings = _settings(cors_origins="http://a.test, http://b.test")

        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]

    def test_extensions_are_normalized(self):
        settings = _settings(image_allowed_extensions=[".JPG", "Png"])

        assert settings.image_allowed_extensions == ["jpg", "png"]

    def test_bunny_region_is_normalized(self):
        assert _settings(bunny_region=" NY ").bunny_region == "ny"

    def test_region_hosts_require_fallback(self):
        with pytest.raises(ValidationError):
            _settings(bunny_region_hosts={"ny": "https://ny.storage.bunnycdn.com"})

    def test_quality_tier_keys_must_match_names(self):
        tier = QualityTier(name="hero", width=1600, height=900, quality=90)

        with pytest.raises(ValidationError):
            _settings(image_quality_tiers={"banner": tier})
        with pytest.raises(ValidationError):
            _settings(image_quality_tiers={})

        assert _settings(image_quality_tiers={"hero": tier}).get_quality_tiers() == [tier]

    def test_quality_bounds(self):
        with pytest.raises(ValidationError):
            QualityTier(name="bad", width=100, height=100, quality=0)
        with pytest.raises(ValidationError):
            QualityTier(name="bad", width=0, height=100, quality=50)

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("MAX_IMAGES_PER_PROPERTY", "30")
        monkeypatch.setenv("IMAGE_STORAGE_DRIVER", "bunny")

        settings = _settings()

        assert settings.max_images_per_property == 30
        assert settings.image_storage_driver == StorageDriver.BUNNY
