# backend/listing_media/services/image_pipeline/validators/upload_validator.py
"""
Upload Validator Component

Checks uploaded media against the configured limits. Every check runs on
every call so the caller receives all problems at once; the validator
never mutates or persists the upload.
"""

from typing import List

from ....config import Settings
from ....enums import LogEmoji, LoggerName, LogSource, MediaKind, ValidationErrorCode
from ....models.media_model import UploadedImage, UploadedMedia, ValidationIssue
from ....utils.file_helpers import has_dangerous_extension
from ...logger import get_service_logger

logger = get_service_logger(LoggerName.IMAGE_PIPELINE, LogSource.PIPELINE)


def _format_megabytes(size_bytes: int) -> str:
    return f"{size_bytes / (1024 * 1024):g}MB"


class UploadValidator:
    """
    Component responsible for upload limit checks.

    Limits come from the injected settings: size, extension and MIME
    allow-lists per media kind, maximum image dimensions and the list of
    executable extensions refused anywhere in a filename.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def validate(
        self, upload: UploadedMedia, kind: MediaKind = MediaKind.IMAGE
    ) -> List[ValidationIssue]:
        """
        Validate an upload.

        Args:
            upload: The uploaded file
            kind: Which limit set applies

        Returns:
            List of issues; empty when the upload is acceptable
        """
        if kind == MediaKind.IMAGE:
            max_size = self.settings.image_max_size_bytes
            extensions = self.settings.image_allowed_extensions
            mime_types = self.settings.image_allowed_mime_types
        else:
            max_size = self.settings.video_max_size_bytes
            extensions = self.settings.video_allowed_extensions
            mime_types = self.settings.video_allowed_mime_types

        issues: List[ValidationIssue] = []

        if upload.size > max_size:
            issues.append(
                ValidationIssue(
                    code=ValidationErrorCode.FILE_TOO_LARGE,
                    message=f"File size exceeds maximum of {_format_megabytes(max_size)}",
                    field="size",
                )
            )

        if upload.extension.lower() not in extensions:
            issues.append(
                ValidationIssue(
                    code=ValidationErrorCode.UNSUPPORTED_EXTENSION,
                    message=f"File type not allowed. Allowed types: {', '.join(extensions)}",
                    field="extension",
                )
            )

        if upload.mime_type.lower() not in mime_types:
            issues.append(
                ValidationIssue(
                    code=ValidationErrorCode.UNSUPPORTED_MIME_TYPE,
                    message=f"MIME type '{upload.mime_type or 'unknown'}' not allowed",
                    field="mime_type",
                )
            )

        if has_dangerous_extension(upload.filename, self.settings.dangerous_extensions):
            issues.append(
                ValidationIssue(
                    code=ValidationErrorCode.DANGEROUS_FILENAME,
                    message="Filename contains a forbidden extension",
                    field="filename",
                )
            )

        if isinstance(upload, UploadedImage):
            issues.extend(self._check_dimensions(upload))

        if issues:
            logger.debug(
                f"Upload '{upload.filename}' has {len(issues)} validation issue(s)",
                extra_context={"codes": [issue.code.value for issue in issues]},
                emoji=LogEmoji.SECURITY,
            )

        return issues

    def _check_dimensions(self, upload: UploadedImage) -> List[ValidationIssue]:
        # Oversized images are clamped by resizing, so this is only a warning
        if upload.width is None or upload.height is None:
            return []

        max_width = self.settings.image_max_width
        max_height = self.settings.image_max_height
        if upload.width <= max_width and upload.height <= max_height:
            return []

        return [
            ValidationIssue(
                code=ValidationErrorCode.DIMENSIONS_TOO_LARGE,
                message=(
                    f"Image dimensions {upload.width}x{upload.height} exceed "
                    f"{max_width}x{max_height}"
                ),
                field="dimensions",
                fatal=False,
            )
        ]

    @staticmethod
    def fatal_issues(issues: List[ValidationIssue]) -> List[ValidationIssue]:
        return [issue for issue in issues if issue.fatal]
