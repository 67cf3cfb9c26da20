"""Core types for fkgraph.

All output types are JSON-serializable so results can be handed straight to
delete-orchestration code or printed by the CLI.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class FieldType(StrEnum):
    """Storage types a plain field can have."""

    UUID = "uuid"
    STRING = "string"
    TEXT = "text"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    DATETIME = "datetime"
    JSON = "json"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid field type values."""
        return [t.value for t in cls]


class AssociationKind(StrEnum):
    """How a field links its entity to another entity."""

    NONE = "none"
    MANY_TO_ONE = "many_to_one"  # e.g., Product -> Manufacturer
    ONE_TO_MANY = "one_to_many"  # e.g., Category -> Products
    MANY_TO_MANY = "many_to_many"  # e.g., Category <-> Tag via CategoryTag

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid association kind values."""
        return [k.value for k in cls]


class Flag(StrEnum):
    """Built-in field markers.

    Fields carry flags as plain strings, so any custom marker can be used
    for filtering as well.
    """

    PRIMARY_KEY = "primary_key"
    REQUIRED = "required"
    CASCADE_DELETE = "cascade_delete"
    RESTRICT_DELETE = "restrict_delete"

    @classmethod
    def values(cls) -> list[str]:
        """Return all built-in flag values."""
        return [f.value for f in cls]


# Restriction list entries are raw ids or many-to-many join pairs
RestrictionEntry = str | dict[str, str]


class AffectedRecord(BaseModel):
    """References found for one input primary key.

    ``restrictions`` maps the referencing entity name to the affected ids, or
    for many-to-many links to ``{local_property: id, reference_property: id}``
    pairs keyed by the mapping entity.
    """

    pk: str
    restrictions: dict[str, list[RestrictionEntry]] = Field(default_factory=dict)

    def count(self) -> int:
        """Total number of affected entries across all entities."""
        return sum(len(entries) for entries in self.restrictions.values())

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"pk": self.pk, "restrictions": self.restrictions}


class AssociationPath(BaseModel):
    """One association a resolution query joins, addressed by its alias path."""

    path: str
    entity: str
    field: str
    association: str
    target: str
    depth: int
