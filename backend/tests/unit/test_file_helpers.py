#!/usr/bin/env python3
# backend/tests/unit/test_file_helpers.py
"""
Tests for filename sanitization, unique naming and path security.
"""

import re
from datetime import datetime

import pytest

from listing_media.exceptions import InvalidPathError
from listing_media.utils.file_helpers import (
    generate_unique_filename,
    get_extension,
    has_dangerous_extension,
    normalize_storage_path,
    property_media_prefix,
    sanitize_filename,
    sanitize_folder,
    slugify,
    validate_file_path,
)

UNIQUE_NAME = re.compile(r"^[a-z0-9-]+_\d{14}_\d{6}_[A-Za-z0-9]{8}\.jpg$")


@pytest.mark.unit
class TestNaming:
    """Test slugs and unique filenames."""

    def test_slugify(self):
        assert slugify("My Holiday Photo!") == "my-holiday-photo"
        assert slugify("***") == "file"
        assert slugify("", fallback="image") == "image"

    def test_unique_filename_format(self):
        name = generate_unique_filename("Beach House.JPG")

        assert UNIQUE_NAME.match(name)
        assert name.startswith("beach-house_")

    def test_unique_filenames_differ_for_same_instant(self):
        now = datetime(2024, 5, 1, 12, 30, 0, 123456)

        names = {generate_unique_filename("photo.jpg", now=now) for _ in range(50)}

        assert len(names) == 50
        assert all("_20240501123000_123456_" in name for name in names)

    def test_unique_filename_with_prefix_and_extension(self):
        name = generate_unique_filename("tour.MOV", extension="mp4", prefix="12")

        assert name.startswith("12_tour_")
        assert name.endswith(".mp4")

    def test_unique_filename_without_extension(self):
        assert "." not in generate_unique_filename("README")

    def test_get_extension(self):
        assert get_extension("a.b.JPEG") == "jpeg"
        assert get_extension("noext") == ""


@pytest.mark.unit
class TestSanitization:
    """Test folder and filename cleaning."""

    def test_sanitize_folder(self):
        assert sanitize_folder(None) == "uploads"
        assert sanitize_folder("../../etc") == "etc"
        assert sanitize_folder("/listings//2024/") == "listings/2024"
        assert sanitize_folder("$$$") == "uploads"

    def test_sanitize_filename(self):
        assert sanitize_filename("my photo (1).jpg") == "myphoto1.jpg"
        assert sanitize_filename("../.htaccess") == "htaccess"
        assert sanitize_filename("") == "unknown"

    def test_dangerous_extensions(self):
        dangerous = ["php", "exe"]

        assert has_dangerous_extension("shell.php", dangerous)
        assert has_dangerous_extension("photo.PHP.jpg", dangerous)
        assert not has_dangerous_extension("php.jpg", dangerous)


@pytest.mark.unit
class TestPathSecurity:
    """Test traversal rejection."""

    def test_normalize_storage_path(self):
        assert normalize_storage_path("/properties//12/./a.webp") == "properties/12/a.webp"
        assert normalize_storage_path("a\\b.jpg") == "a/b.jpg"

    @pytest.mark.parametrize("path", ["", "/", "../secret", "a/../../b", "  "])
    def test_rejected_paths(self, path):
        with pytest.raises(InvalidPathError):
            normalize_storage_path(path)

    def test_validate_file_path_stays_under_root(self, tmp_path):
        resolved = validate_file_path("properties/1/a.webp", tmp_path)

        assert resolved == (tmp_path / "properties/1/a.webp").resolve()

    def test_validate_file_path_rejects_symlink_escape(self, tmp_path):
        outside = tmp_path / "outside"
        outside.mkdir()
        root = tmp_path / "root"
        root.mkdir()
        (root / "link").symlink_to(outside)

        with pytest.raises(InvalidPathError):
            validate_file_path("link/file.txt", root)

    def test_property_media_prefix(self):
        assert property_media_prefix("/properties/", 12, "images") == "properties/12/images"
