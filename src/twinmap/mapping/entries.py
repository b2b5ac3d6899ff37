"""
Mapping entries between OPC-UA tags and digital-twin properties.

A mapping entry pairs one telemetry tag with one property of one twin. The
property is addressed by its component-qualified path
(`componentName/propertyName`), so the same property name can be mapped
independently on different components of the same twin.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List

from pydantic import BaseModel, ConfigDict, Field

from ..core.errors import MappingError
from ..core.types import Node, NodeKind, ParentRelationship
from ..models.normalizer import ModelTree

logger = logging.getLogger(__name__)


class TelemetryItem(BaseModel):
    """The telemetry side of a mapping: a selected tag row."""
    key: str
    node_id: str = Field(alias="nodeId")
    node_name: str = Field(alias="nodeName")
    namespace: List[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_node(cls, node: Node) -> "TelemetryItem":
        if node.kind != NodeKind.TAG:
            raise MappingError(f"{node.key} is a {node.kind} row, not a telemetry tag")
        return cls(key=node.key, node_id=node.source_id or node.name, node_name=node.name, namespace=list(node.namespace))


class TwinPropertyItem(BaseModel):
    """The twin side of a mapping: a twin plus one property of its model."""
    key: str
    twin_id: str = Field(alias="twinId")
    twin_name: str | None = Field(default=None, alias="twinName")
    model_id: str = Field(alias="modelId")
    property_name: str = Field(alias="propertyName")
    property_path: str = Field(alias="propertyPath")
    component: str | None = None
    parent_relationships: List[ParentRelationship] = Field(default_factory=list, alias="parentRelationships")

    model_config = ConfigDict(populate_by_name=True)


class MappingEntry(BaseModel):
    """One tag -> twin property mapping, serialized with camelCase keys."""
    key: str
    opcua_key: str | None = Field(default=None, alias="opcuaKey")
    opcua_name: str = Field(alias="opcuaName")
    opcua_node_id: str = Field(alias="opcuaNodeId")
    opcua_path: List[str] = Field(default_factory=list, alias="opcuaPath")
    dt_key: str | None = Field(default=None, alias="dtKey")
    dt_twin_id: str = Field(alias="dtTwinId")
    dt_twin_name: str | None = Field(default=None, alias="dtName")
    dt_property_name: str = Field(alias="dtPropertyName")
    dt_property_path: str = Field(alias="dtPropertyPath")
    dt_component: str | None = Field(default=None, alias="dtComponent")
    dt_model_id: str = Field(alias="dtModelId")
    dt_parent_relationships: List[ParentRelationship] = Field(default_factory=list, alias="dtParentRelationships")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_items(cls, telemetry: TelemetryItem, twin: TwinPropertyItem) -> "MappingEntry":
        return cls(
            key=entry_key(telemetry.node_id, twin.twin_id, twin.property_path),
            opcua_key=telemetry.key,
            opcua_name=telemetry.node_name,
            opcua_node_id=telemetry.node_id,
            opcua_path=telemetry.namespace,
            dt_key=twin.key,
            dt_twin_id=twin.twin_id,
            dt_twin_name=twin.twin_name,
            dt_property_name=twin.property_name,
            dt_property_path=twin.property_path,
            dt_component=twin.component,
            dt_model_id=twin.model_id,
            dt_parent_relationships=twin.parent_relationships,
        )

    def matches(self, text: str) -> bool:
        needle = text.lower()
        return any(
            needle in value.lower()
            for value in (self.opcua_node_id, self.dt_twin_id, self.dt_property_path, self.dt_model_id)
        )


def entry_key(node_id: str, twin_id: str, property_path: str) -> str:
    return f"{node_id}->{twin_id}/{property_path}"


def twin_property_item(property_key: str, model_tree: ModelTree, twin_node: Node) -> TwinPropertyItem:
    """
    Pair a twin row with a property row of the model tree.

    Raises:
        MappingError: If the rows are of the wrong kind, or the twin does not
            implement the model that owns the property.
    """
    if twin_node.kind != NodeKind.TWIN:
        raise MappingError(f"{twin_node.key} is a {twin_node.kind} row, not a twin")

    prop = model_tree.get(property_key)
    if prop is None:
        raise MappingError(f"Unknown property row: {property_key}")
    if prop.kind != NodeKind.PROPERTY:
        raise MappingError(f"{property_key} is a {prop.kind} row, not a property")

    owner = model_tree.owning_model_id(property_key)
    if owner != twin_node.model_id:
        raise MappingError(
            f"Twin {twin_node.source_id} implements {twin_node.model_id}, "
            f"but property {prop.name} belongs to {owner}"
        )

    return TwinPropertyItem(
        key=twin_node.key,
        twin_id=twin_node.source_id or twin_node.name,
        twin_name=twin_node.name,
        model_id=twin_node.model_id,
        property_name=prop.name,
        property_path=model_tree.property_path(property_key),
        component=model_tree.component_name(property_key),
        parent_relationships=list(twin_node.parent_relationships),
    )


def build_mapping_entry(tag_node: Node, property_key: str, model_tree: ModelTree, twin_node: Node) -> MappingEntry:
    """Build a mapping entry from a tag row, a property row key and a twin row."""
    telemetry = TelemetryItem.from_node(tag_node)
    twin = twin_property_item(property_key, model_tree, twin_node)
    return MappingEntry.from_items(telemetry, twin)


class MappingTable:
    """
    Ordered collection of mapping entries keyed by entry key.
    """

    def __init__(self, entries: Iterable[MappingEntry] = ()):
        self._entries: Dict[str, MappingEntry] = {}
        for entry in entries:
            self.add(entry)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __iter__(self):
        return iter(self._entries.values())

    @property
    def entries(self) -> List[MappingEntry]:
        return list(self._entries.values())

    def get(self, key: str) -> MappingEntry | None:
        return self._entries.get(key)

    def add(self, entry: MappingEntry) -> MappingEntry:
        if entry.key in self._entries:
            raise MappingError(f"Mapping already exists: {entry.key}")
        self._entries[entry.key] = entry
        logger.debug(f"Added mapping {entry.key}")
        return entry

    def update(self, key: str, entry: MappingEntry) -> MappingEntry:
        """Replace the entry stored under key, keeping its position."""
        if key not in self._entries:
            raise MappingError(f"Unknown mapping: {key}")
        if entry.key != key and entry.key in self._entries:
            raise MappingError(f"Mapping already exists: {entry.key}")

        self._entries = {
            (entry.key if k == key else k): (entry if k == key else v)
            for k, v in self._entries.items()
        }
        return entry

    def remove(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def filter(self, text: str | None) -> List[MappingEntry]:
        """Case-insensitive substring filter over node id, twin id, property path and model id."""
        if not text:
            return self.entries
        return [entry for entry in self._entries.values() if entry.matches(text)]

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(
            [entry.model_dump(by_alias=True, exclude_none=True) for entry in self._entries.values()],
            indent=indent,
        )

    def save(self, path: Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json())
        logger.info(f"Saved {len(self)} mappings to {path}")
        return path

    @classmethod
    def load(cls, path: Path) -> "MappingTable":
        data = json.loads(Path(path).read_text())
        return cls(MappingEntry.model_validate(item) for item in data)
