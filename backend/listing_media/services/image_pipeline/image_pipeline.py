# backend/listing_media/services/image_pipeline/image_pipeline.py
"""
Main Image Pipeline Class

Validation -> variant generation -> storage for one uploaded image.

Variant sets are all-or-nothing. Every tier is encoded before anything is
written; each variant then goes to its own unique path, and if any write
fails the variants already written are deleted again before the error is
raised. Callers only ever receive complete sets.
"""

from typing import Dict, List, Optional

from ...config import Settings
from ...enums import LogEmoji, LoggerName, LogSource, MediaKind
from ...exceptions import MediaValidationError, VariantGenerationError
from ...models.media_model import (
    EncodedVariant,
    ImageVariant,
    QualityTier,
    UploadedImage,
    UploadedImageResult,
)
from ...utils.file_helpers import generate_unique_token, slugify
from ..logger import get_service_logger
from ..storage.base_storage import StorageBackend
from .generators import VariantGenerator
from .validators import UploadValidator

logger = get_service_logger(LoggerName.IMAGE_PIPELINE, LogSource.PIPELINE)


class ImagePipeline:
    """
    Image pipeline with injected storage, validator and generator.

    Args:
        settings: Limits and quality tiers
        storage: Backend the variants are written to
        validator: Defaults to an UploadValidator over settings
        generator: Defaults to a VariantGenerator over settings
    """

    def __init__(
        self,
        settings: Settings,
        storage: StorageBackend,
        validator: Optional[UploadValidator] = None,
        generator: Optional[VariantGenerator] = None,
    ):
        self.settings = settings
        self.storage = storage
        self.validator = validator or UploadValidator(settings)
        self.generator = generator or VariantGenerator(settings)

    @property
    def tiers(self) -> List[QualityTier]:
        return self.settings.get_quality_tiers()

    def process(
        self, upload: UploadedImage, collection: str, name_prefix: str
    ) -> UploadedImageResult:
        """
        Validate, generate and store every variant of one image.

        Args:
            upload: The uploaded image
            collection: Storage directory, e.g. 'properties/12/images'
            name_prefix: Slug or id leading every variant filename

        Returns:
            UploadedImageResult holding exactly one variant per tier

        Raises:
            MediaValidationError: On any fatal validation issue
            DecodeError: If the upload is not a decodable image
            VariantGenerationError: If a tier failed to encode or store
        """
        issues = self.validator.validate(upload, MediaKind.IMAGE)
        if UploadValidator.fatal_issues(issues):
            raise MediaValidationError("Validation failed", issues=issues)

        encoded = self.generator.generate(upload, self.tiers)
        variants = self._store_variants(encoded, collection, name_prefix)

        logger.info(
            f"Stored {len(variants)} variants for {upload.filename}",
            extra_context={"collection": collection, "size": upload.size},
            emoji=LogEmoji.UPLOAD,
        )
        return UploadedImageResult(
            original_name=upload.filename,
            mime_type=upload.mime_type,
            size=upload.size,
            variants=variants,
            warnings=[issue for issue in issues if not issue.fatal],
        )

    def build_variant_path(
        self, collection: str, name_prefix: str, tier: str, token: str, extension: str
    ) -> str:
        base = slugify(name_prefix)
        return f"{collection.strip('/')}/{base}_{tier}_{token}.{extension}"

    def _store_variants(
        self, encoded: Dict[str, EncodedVariant], collection: str, name_prefix: str
    ) -> Dict[str, ImageVariant]:
        # One token per upload keeps the tiers of an image grouped by name
        token = generate_unique_token()
        written: List[str] = []
        variants: Dict[str, ImageVariant] = {}

        for tier_name, variant in encoded.items():
            path = self.build_variant_path(
                collection, name_prefix, tier_name, token, variant.extension
            )
            result = self.storage.write(path, variant.content, variant.mime_type)

            if not result.success:
                self._rollback(written)
                raise VariantGenerationError(
                    "Failed to store image variants",
                    tier_errors={tier_name: result.error or "Storage write failed"},
                )

            written.append(result.path)
            variants[tier_name] = ImageVariant(
                tier=tier_name,
                path=result.path,
                url=result.public_url or self.storage.public_url(result.path),
                size=len(variant.content),
                quality=variant.quality,
                width=variant.width,
                height=variant.height,
                format=variant.format,
                progressive=variant.progressive,
            )

        return variants

    def _rollback(self, written: List[str]) -> None:
        if not written:
            return

        leftovers = self.storage.delete_many(written)
        if leftovers:
            logger.error(
                "Could not remove partially written variants",
                error_context={"orphaned_paths": leftovers},
            )
        else:
            logger.warning(
                f"Rolled back {len(written)} partially written variants",
                emoji=LogEmoji.CLEANUP,
            )
