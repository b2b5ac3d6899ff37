"""
Core type definitions for twinmap.

Rows produced by every normalizer share the same immutable Node shape so the
tree controller can drive them without knowing where they came from.
"""

from enum import StrEnum
from typing import Any, Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field


class NodeKind(StrEnum):
    """Categories of rows in a normalized tree."""
    INTERFACE = "interface"
    PROPERTY = "property"
    COMPONENT = "component"
    RELATIONSHIP = "relationship"
    MODEL = "model"
    TWIN = "twin"
    SEPARATOR = "separator"
    NAMESPACE = "namespace"
    TAG = "tag"


# Content kinds that are replaced by the interface they reference
INLINED_KINDS = frozenset({NodeKind.COMPONENT, NodeKind.RELATIONSHIP})


class PropertyDescriptor(BaseModel):
    """
    Canonical description of a property schema.

    schema_kind is either a scalar name ("string", "double", ...) or one of
    "object", "array", "enum", "map". Only the payload matching the kind is
    populated; scalars carry no payload.
    """
    schema_kind: str
    name: str | None = None
    nested: Tuple["PropertyDescriptor", ...] = ()
    element_type: str | None = None
    enum_entries: Tuple[Tuple[str, Any], ...] = ()
    map_key: Tuple[str, str] | None = None
    map_value: Tuple[str, str] | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_complex(self) -> bool:
        return self.schema_kind in ("object", "array", "enum", "map")

    def summary(self) -> str:
        """Short human readable form, e.g. 'double array' or 'map<k: string, v: double>'."""
        if self.schema_kind == "array":
            return f"{self.element_type} array"
        if self.schema_kind == "map" and self.map_key and self.map_value:
            return (
                f"map<{self.map_key[0]}: {self.map_key[1]}, "
                f"{self.map_value[0]}: {self.map_value[1]}>"
            )
        if self.schema_kind == "enum":
            return "enum(" + ", ".join(f"{n}: {v}" for n, v in self.enum_entries) + ")"
        if self.schema_kind == "object":
            return "object{" + ", ".join(f.name or "" for f in self.nested) + "}"
        return self.schema_kind


class ParentRelationship(BaseModel):
    """An incoming relationship of a twin: the source twin and the relationship name."""
    name: str
    source: str
    display_name: str | None = Field(default=None, alias="displayName")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Node(BaseModel):
    """
    A single renderable row.

    Nodes are immutable snapshots. The tree controller produces new copies
    (via model_copy) when collapse or visibility changes.
    """
    key: str
    source_id: str | None = None
    kind: NodeKind
    name: str
    display_name: str | None = None
    parent_key: str | None = None
    child_keys: Tuple[str, ...] = ()
    depth: int = 0
    namespace: Tuple[str, ...] = ()
    collapsed: bool = False
    hidden: bool = False
    is_synthetic: bool = False

    # Payloads (only populated for the matching kinds)
    model_id: str | None = None
    target: str | None = None
    descriptor: PropertyDescriptor | None = None
    parent_relationships: Tuple[ParentRelationship, ...] = ()
    unresolved: bool = False
    data_type: str | None = None
    struct: Tuple[Tuple[int, str, str], ...] = ()

    model_config = ConfigDict(frozen=True, extra="ignore")

    @property
    def is_parent(self) -> bool:
        return bool(self.child_keys)

    @property
    def label(self) -> str:
        return self.display_name or self.name

    @property
    def full_name(self) -> str:
        return ".".join([*self.namespace, self.name])


class DraftTwin(BaseModel):
    """A twin the operator is staging that does not exist in the backing store yet."""
    twin_id: str = Field(alias="twinId")
    model_id: str = Field(alias="modelId")
    parent_relationships: List[ParentRelationship] = Field(default_factory=list, alias="parentRels")

    model_config = ConfigDict(populate_by_name=True)


def index_nodes(rows: List[Node]) -> Dict[str, Node]:
    """Build a key -> Node map preserving row order."""
    return {row.key: row for row in rows}
