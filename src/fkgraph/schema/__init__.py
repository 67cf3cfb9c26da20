"""Schema definitions and registry for fkgraph."""

from fkgraph.schema.definitions import EntityDefinition, FieldDefinition, SchemaSpec
from fkgraph.schema.registry import SchemaRegistry

__all__ = [
    "SchemaRegistry",
    "EntityDefinition",
    "FieldDefinition",
    "SchemaSpec",
]
