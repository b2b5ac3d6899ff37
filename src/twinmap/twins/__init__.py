"""
Digital-twin instance normalization.

Groups twins by model and stages not-yet-created twins under a separator row.
"""

from .normalizer import (
    TwinNormalizer, TwinTree, apply_drafts, future_twin_key,
    model_key, normalize_twins, separator_key, twin_key,
)

__all__ = [
    "TwinNormalizer", "TwinTree", "normalize_twins", "apply_drafts",
    "model_key", "twin_key", "separator_key", "future_twin_key",
]
