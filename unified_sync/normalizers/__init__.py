from unified_sync.normalizers.base import BaseNormalizer
from unified_sync.normalizers.registry import NormalizerRegistry, default_registry

__all__ = ["BaseNormalizer", "NormalizerRegistry", "default_registry"]
