"""
DTDL model-definition normalization.

Provides the ModelNormalizer that inlines component and relationship
interfaces into a single renderable tree.
"""

from .normalizer import ModelNormalizer, ModelTree, interface_key, localized, normalize_models

__all__ = ["ModelNormalizer", "ModelTree", "normalize_models", "interface_key", "localized"]
