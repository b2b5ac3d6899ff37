"""
Schema Resolver.

Turns the raw `schema` value of a DTDL property (or of an object field) into
a canonical PropertyDescriptor.

Recognized shapes:
- "double"                                   -> scalar
- {"@type": "Object", "fields": [...]}       -> object
- {"@type": "Array", "elementSchema": ...}   -> array
- {"@type": "Enum", "enumValues": [...]}     -> enum
- {"@type": "Map", "mapKey": .., "mapValue": ..} -> map
- {"schema": ...}                            -> wrapper, resolved recursively
"""

from typing import Any

from ..config import MAX_SCHEMA_DEPTH
from ..core.errors import SchemaDepthError, SchemaError
from ..core.types import PropertyDescriptor

COMPLEX_KINDS = ("object", "array", "enum", "map")


def resolve_schema(raw: Any, name: str | None = None, depth: int = 0) -> PropertyDescriptor:
    """
    Resolve a raw schema value into a PropertyDescriptor.

    Args:
        raw: The schema value (string or mapping).
        name: Field name, set when resolving the fields of an object schema.
        depth: Current nesting level.

    Raises:
        SchemaDepthError: if nesting exceeds MAX_SCHEMA_DEPTH.
        SchemaError: if the value cannot be classified.
    """
    if depth > MAX_SCHEMA_DEPTH:
        raise SchemaDepthError(
            f"schema nesting exceeds {MAX_SCHEMA_DEPTH} levels"
            + (f" at '{name}'" if name else "")
        )

    if isinstance(raw, str):
        return PropertyDescriptor(schema_kind=raw, name=name)

    if not isinstance(raw, dict):
        raise SchemaError(f"unsupported schema value {raw!r}" + (f" for '{name}'" if name else ""))

    # Order matters: a Property carries both @type and schema, but its @type is
    # not the schema kind, so the structural keys are checked first.
    if "fields" in raw:
        return _resolve_object(raw, name, depth)
    if "elementSchema" in raw:
        return PropertyDescriptor(
            schema_kind="array",
            name=name,
            element_type=schema_kind_of(raw["elementSchema"], depth + 1),
        )
    if "enumValues" in raw:
        return _resolve_enum(raw, name)
    if "mapKey" in raw or "mapValue" in raw:
        return _resolve_map(raw, name, depth)
    if "schema" in raw:
        return resolve_schema(raw["schema"], name, depth + 1)

    declared = str(raw.get("@type", "")).lower()
    if declared and declared not in COMPLEX_KINDS:
        return PropertyDescriptor(schema_kind=declared, name=name)

    raise SchemaError(f"incomplete {declared or 'untyped'} schema" + (f" for '{name}'" if name else ""))


def schema_kind_of(raw: Any, depth: int = 0) -> str:
    """Return only the kind name of a schema value."""
    return resolve_schema(raw, depth=depth).schema_kind


def _resolve_object(raw: dict, name: str | None, depth: int) -> PropertyDescriptor:
    fields = raw.get("fields") or []
    if not isinstance(fields, list):
        raise SchemaError("object fields must be a list" + (f" for '{name}'" if name else ""))

    nested = []
    for field in fields:
        if not isinstance(field, dict) or "schema" not in field:
            raise SchemaError(f"object field without schema in '{name or 'object'}'")
        nested.append(resolve_schema(field["schema"], field.get("name"), depth + 1))

    return PropertyDescriptor(schema_kind="object", name=name, nested=tuple(nested))


def _resolve_enum(raw: dict, name: str | None) -> PropertyDescriptor:
    entries = []
    for value in raw.get("enumValues") or []:
        if not isinstance(value, dict):
            raise SchemaError(f"enum value {value!r} is not an object")
        entries.append((value.get("name", ""), value.get("enumValue")))
    return PropertyDescriptor(schema_kind="enum", name=name, enum_entries=tuple(entries))


def _resolve_map(raw: dict, name: str | None, depth: int) -> PropertyDescriptor:
    map_key = raw.get("mapKey")
    map_value = raw.get("mapValue")
    if not isinstance(map_key, dict) or not isinstance(map_value, dict):
        raise SchemaError("map schema needs both mapKey and mapValue" + (f" for '{name}'" if name else ""))

    return PropertyDescriptor(
        schema_kind="map",
        name=name,
        map_key=(map_key.get("name", ""), schema_kind_of(map_key.get("schema"), depth + 1)),
        map_value=(map_value.get("name", ""), schema_kind_of(map_value.get("schema"), depth + 1)),
    )
