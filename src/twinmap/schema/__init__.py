"""Property schema resolution for DTDL interfaces."""

from .resolver import resolve_schema, schema_kind_of

__all__ = ["resolve_schema", "schema_kind_of"]
