"""
OPC-UA telemetry tag normalization.
"""

from .normalizer import (
    TelemetryNormalizer, TelemetryTree, flatten_struct,
    namespace_key, normalize_telemetry, tag_key,
)

__all__ = [
    "TelemetryNormalizer", "TelemetryTree", "normalize_telemetry",
    "flatten_struct", "namespace_key", "tag_key",
]
