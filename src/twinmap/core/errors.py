"""
Error types for twinmap.

Exceptions are raised inside the normalizers and converted to NormalizeError
values at the normalizer boundary.
"""

from dataclasses import dataclass


class TwinmapError(Exception):
    """Base class for all twinmap exceptions."""


class SchemaError(TwinmapError):
    """A property schema could not be classified."""


class SchemaDepthError(SchemaError):
    """Schema nesting exceeded MAX_SCHEMA_DEPTH (most likely a self-reference)."""


class ModelCycleError(TwinmapError):
    """An interface inlines itself through its components or relationships."""


class MappingError(TwinmapError):
    """A mapping entry was requested from an incompatible selection."""


@dataclass
class NormalizeError:
    """Represents input rejected at a normalizer boundary."""

    message: str
    error_type: str = "invalid_input"
    recoverable: bool = True

    @classmethod
    def invalid_input(cls, reason: str, error_type: str = "invalid_input") -> "NormalizeError":
        return cls(message=f"Invalid input file ({reason})", error_type=error_type)

    def __str__(self) -> str:
        return self.message
