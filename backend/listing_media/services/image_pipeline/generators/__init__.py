from .variant_generator import VariantGenerator

__all__ = ["VariantGenerator"]
