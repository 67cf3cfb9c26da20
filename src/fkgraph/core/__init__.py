"""Core components for fkgraph."""

from fkgraph.core.connection import DatabaseConnection
from fkgraph.core.types import (
    AffectedRecord,
    AssociationKind,
    AssociationPath,
    FieldType,
    Flag,
)

__all__ = [
    "DatabaseConnection",
    "AffectedRecord",
    "AssociationKind",
    "AssociationPath",
    "FieldType",
    "Flag",
]
