"""
twinmap - Map OPC-UA telemetry onto digital twins.

twinmap turns raw DTDL model definitions, twin listings and OPC-UA tag
exports into flat, collapsible row trees, and pairs telemetry tags with
twin properties.

Key Components:
- schema: Property schema classification
- models: DTDL interface normalization with component/relationship inlining
- twins: Twin grouping and draft ("future") twin staging
- telemetry: OPC-UA namespace/tag normalization
- tree: Collapse, selection and paging over any normalized rows
- mapping: Tag -> twin property mapping entries

Usage:
    from twinmap.models import normalize_models
    from twinmap.tree import TreeController

    tree = normalize_models(raw).unwrap()
    controller = TreeController(tree.rows)
"""

__version__ = "0.1.0"

from .core.types import DraftTwin, Node, NodeKind, ParentRelationship, PropertyDescriptor

__all__ = [
    "__version__",
    "Node",
    "NodeKind",
    "PropertyDescriptor",
    "ParentRelationship",
    "DraftTwin",
]
