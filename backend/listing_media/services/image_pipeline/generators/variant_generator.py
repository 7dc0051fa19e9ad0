# backend/listing_media/services/image_pipeline/generators/variant_generator.py
"""
Variant Generator Component

Produces one resized, re-encoded variant per quality tier from a single
source image. Encoding happens in memory; persisting the variants is the
pipeline's job.
"""

import io
from typing import Dict, List

from PIL import Image, ImageOps, UnidentifiedImageError

from ....config import Settings
from ....enums import ImageFormat, LogEmoji, LoggerName, LogSource
from ....exceptions import DecodeError, EncodeError, VariantGenerationError
from ....models.media_model import EncodedVariant, QualityTier, UploadedImage
from ...logger import get_service_logger
from ..utils.image_utils import (
    PIL_FORMAT_NAMES,
    calculate_variant_dimensions,
    is_format_supported,
)

logger = get_service_logger(LoggerName.IMAGE_PIPELINE, LogSource.PIPELINE)

# Everything else (EXIF, XMP, comments) is stripped from variants
PRESERVED_INFO_KEYS = ("transparency", "icc_profile")


class VariantGenerator:
    """
    Component responsible for generating every tier of one upload.

    Per tier:
    - Aspect-preserving fit into the tier box, never upscaling
    - Quality boost for small originals on the boosted tiers
    - Progressive encoding for large originals (JPEG output)
    - WebP falls back to the configured format when unavailable
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def resolve_quality(self, tier: QualityTier, original_size: int) -> int:
        """
        Quality used for a tier.

        Originals at or below the preservation threshold get the boost on
        the boosted tiers, capped at quality_boost_cap.
        """
        quality = tier.quality
        if (
            original_size <= self.settings.quality_preserve_threshold_bytes
            and tier.name in self.settings.quality_boost_tiers
        ):
            quality = min(
                quality + self.settings.quality_boost_delta,
                self.settings.quality_boost_cap,
            )
        return quality

    def should_use_progressive(self, original_size: int) -> bool:
        return original_size > self.settings.progressive_threshold_bytes

    def resolve_format(self, tier: QualityTier) -> ImageFormat:
        if is_format_supported(tier.format):
            return tier.format

        logger.warning(
            f"{tier.format.value} encoding unavailable, using "
            f"{self.settings.fallback_image_format.value} for tier '{tier.name}'"
        )
        return self.settings.fallback_image_format

    def generate(
        self, source: UploadedImage, tiers: List[QualityTier]
    ) -> Dict[str, EncodedVariant]:
        """
        Encode every tier of the source image.

        Args:
            source: The validated upload
            tiers: Tiers to produce

        Returns:
            Mapping of tier name to encoded variant, one per tier

        Raises:
            DecodeError: If the source bytes are not a raster image
            VariantGenerationError: If any tier failed to encode
        """
        image = self._decode(source)
        variants: Dict[str, EncodedVariant] = {}
        tier_errors: Dict[str, str] = {}

        try:
            for tier in tiers:
                try:
                    variants[tier.name] = self._encode_tier(image, tier, source.size)
                except EncodeError as e:
                    logger.error(
                        f"Failed to encode tier '{tier.name}' for {source.filename}",
                        exception=e,
                        error_context={"tier": tier.name, "format": tier.format.value},
                    )
                    tier_errors[tier.name] = e.message
        finally:
            image.close()

        if tier_errors:
            raise VariantGenerationError(
                "Failed to generate image variants", tier_errors=tier_errors
            )

        logger.debug(
            f"Generated {len(variants)} variants for {source.filename}",
            extra_context={"source_size": source.size},
            emoji=LogEmoji.IMAGE,
        )
        return variants

    def _decode(self, source: UploadedImage) -> Image.Image:
        try:
            with Image.open(io.BytesIO(source.content)) as img:
                img.load()
                # Apply EXIF orientation; the re-encode drops the metadata
                oriented = ImageOps.exif_transpose(img)
                if oriented is None:
                    oriented = img.copy()
                oriented.info = {
                    key: value
                    for key, value in oriented.info.items()
                    if key in PRESERVED_INFO_KEYS
                }
                return oriented
        except (
            UnidentifiedImageError,
            OSError,
            ValueError,
            Image.DecompressionBombError,
        ) as e:
            logger.warning(
                f"Could not decode uploaded image {source.filename}",
                extra_context={"error": str(e)},
            )
            raise DecodeError("Uploaded file is not a valid image")

    def _encode_tier(
        self, image: Image.Image, tier: QualityTier, original_size: int
    ) -> EncodedVariant:
        width, height = calculate_variant_dimensions(
            image.size, (tier.width, tier.height)
        )

        if (width, height) == image.size:
            resized = image
        else:
            resized = image.resize((width, height), Image.Resampling.LANCZOS)

        output_format = self.resolve_format(tier)
        quality = self.resolve_quality(tier, original_size)
        progressive = (
            self.should_use_progressive(original_size)
            and output_format == ImageFormat.JPEG
        )

        content = self._encode(resized, output_format, quality, progressive)
        if resized is not image:
            resized.close()

        return EncodedVariant(
            tier=tier.name,
            content=content,
            quality=quality,
            width=width,
            height=height,
            format=output_format,
            progressive=progressive,
        )

    @staticmethod
    def _prepare_mode(image: Image.Image, output_format: ImageFormat) -> Image.Image:
        if output_format == ImageFormat.JPEG:
            if image.mode not in ("RGB", "L"):
                return image.convert("RGB")
            return image

        if output_format == ImageFormat.WEBP and image.mode not in ("RGB", "RGBA"):
            has_alpha = image.mode in ("RGBA", "LA", "PA") or (
                "transparency" in image.info
            )
            return image.convert("RGBA" if has_alpha else "RGB")

        return image

    def _encode(
        self,
        image: Image.Image,
        output_format: ImageFormat,
        quality: int,
        progressive: bool,
    ) -> bytes:
        prepared = self._prepare_mode(image, output_format)
        buffer = io.BytesIO()

        save_kwargs: Dict[str, object] = {}
        if output_format == ImageFormat.JPEG:
            save_kwargs = {
                "quality": quality,
                "optimize": True,
                "progressive": progressive,
            }
        elif output_format == ImageFormat.WEBP:
            save_kwargs = {"quality": quality, "method": 4}
        elif output_format == ImageFormat.PNG:
            save_kwargs = {"optimize": True}

        try:
            prepared.save(buffer, PIL_FORMAT_NAMES[output_format], **save_kwargs)
        except (OSError, ValueError) as e:
            raise EncodeError(f"Failed to encode {output_format.value} variant") from e
        finally:
            if prepared is not image:
                prepared.close()

        return buffer.getvalue()
