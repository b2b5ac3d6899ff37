"""
Core modules for twinmap.

This package contains the fundamental building blocks:
- types: Row and schema data structures (Node, PropertyDescriptor, ...)
- result: Ok/Err values returned at normalizer boundaries
- errors: Exception hierarchy and NormalizeError
"""

from .errors import (
    MappingError, ModelCycleError, NormalizeError,
    SchemaDepthError, SchemaError, TwinmapError,
)
from .result import Err, Ok, Result, map_ok
from .types import DraftTwin, Node, NodeKind, ParentRelationship, PropertyDescriptor

__all__ = [
    # Types
    "Node", "NodeKind", "PropertyDescriptor", "ParentRelationship", "DraftTwin",
    # Result
    "Ok", "Err", "Result", "map_ok",
    # Errors
    "TwinmapError", "SchemaError", "SchemaDepthError", "ModelCycleError",
    "MappingError", "NormalizeError",
]
