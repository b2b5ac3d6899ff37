"""
Tag to twin-property mappings.
"""

from .entries import (
    MappingEntry, MappingTable, TelemetryItem, TwinPropertyItem,
    build_mapping_entry, entry_key, twin_property_item,
)

__all__ = [
    "MappingEntry", "MappingTable", "TelemetryItem", "TwinPropertyItem",
    "build_mapping_entry", "twin_property_item", "entry_key",
]
