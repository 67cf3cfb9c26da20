"""Entity and field definitions.

Definitions are plain data: each entity lists its fields in order, and each
field says where it is stored, which entity it points at (if any) and which
flags it carries. Schema documents are loaded straight into these models.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from fkgraph.core.types import AssociationKind, FieldType, Flag
from fkgraph.exceptions import FieldNotFoundError


class FieldDefinition(BaseModel):
    """A single field on an entity.

    For associations ``storage_name`` is the local join column and
    ``reference_field`` the join column on the referenced table:

    - many_to_one: ``product.manufacturer_id = manufacturer.id``
    - one_to_many: ``category.id = product.category_id``
    - many_to_many: ``category.id = category_tag.category_id``, with
      ``category_tag.tag_id`` pointing at the reference
    """

    name: str = Field(..., description="Property name")
    storage_name: str | None = Field(default=None, description="Column in the declaring table")
    type: FieldType = Field(default=FieldType.UUID, description="Storage type of plain fields")
    association: AssociationKind = Field(default=AssociationKind.NONE)
    reference: str | None = Field(default=None, description="Referenced entity name")
    reference_field: str | None = Field(default=None, description="Join column on the reference")
    mapping: str | None = Field(default=None, description="Mapping entity (many_to_many)")
    mapping_local_column: str | None = None
    mapping_reference_column: str | None = None
    flags: frozenset[str] = Field(default_factory=frozenset)
    description: str | None = None

    @field_validator("flags", mode="before")
    @classmethod
    def _coerce_flags(cls, value: Any) -> Any:
        if isinstance(value, str):
            return frozenset([value])
        if value is None:
            return frozenset()
        return frozenset(str(flag) for flag in value)

    @model_validator(mode="after")
    def _check_association(self) -> FieldDefinition:
        kind = self.association
        if kind == AssociationKind.NONE:
            if self.reference is not None:
                raise ValueError(
                    f"Field '{self.name}' has a reference but no association kind. "
                    f"Valid kinds: {', '.join(AssociationKind.values())}"
                )
            if self.storage_name is None:
                self.storage_name = self.name
            return self

        if not self.reference:
            raise ValueError(f"Association '{self.name}' ({kind}) requires a reference entity")

        if kind == AssociationKind.MANY_TO_ONE:
            if not self.storage_name:
                raise ValueError(
                    f"many_to_one association '{self.name}' requires storage_name "
                    "(the local foreign key column)"
                )
            if self.reference_field is None:
                self.reference_field = "id"
        elif kind == AssociationKind.ONE_TO_MANY:
            if not self.reference_field:
                raise ValueError(
                    f"one_to_many association '{self.name}' requires reference_field "
                    f"(the foreign key column on '{self.reference}')"
                )
            if self.storage_name is None:
                self.storage_name = "id"
        else:
            missing = [
                attr
                for attr in ("mapping", "mapping_local_column", "mapping_reference_column")
                if not getattr(self, attr)
            ]
            if missing:
                raise ValueError(
                    f"many_to_many association '{self.name}' requires {', '.join(missing)}"
                )
            if self.storage_name is None:
                self.storage_name = "id"
            if self.reference_field is None:
                self.reference_field = "id"
        return self

    @property
    def is_association(self) -> bool:
        return self.association != AssociationKind.NONE

    @property
    def is_primary_key(self) -> bool:
        return Flag.PRIMARY_KEY in self.flags

    def has_flag(self, flag: str) -> bool:
        """Check whether the field carries a marker."""
        return str(flag) in self.flags


class EntityDefinition(BaseModel):
    """An entity type: a name, a table and an ordered field list."""

    name: str = Field(..., description="Entity name, used as restriction key")
    table_name: str | None = Field(default=None, description="Storage table (defaults to name)")
    fields: list[FieldDefinition] = Field(default_factory=list)
    description: str | None = None

    @model_validator(mode="after")
    def _check_fields(self) -> EntityDefinition:
        if self.table_name is None:
            self.table_name = self.name

        seen: set[str] = set()
        for field in self.fields:
            if field.name in seen:
                raise ValueError(f"Entity '{self.name}' declares field '{field.name}' twice")
            seen.add(field.name)

        if not self.primary_keys:
            raise ValueError(
                f"Entity '{self.name}' has no primary key. "
                f"Flag at least one field with '{Flag.PRIMARY_KEY}'"
            )
        for field in self.primary_keys:
            if field.is_association:
                raise ValueError(
                    f"Primary key '{field.name}' on '{self.name}' must be a plain field"
                )
        return self

    @property
    def primary_keys(self) -> list[FieldDefinition]:
        """Primary-key fields in declaration order."""
        return [f for f in self.fields if f.is_primary_key]

    @property
    def columns(self) -> list[FieldDefinition]:
        """Fields stored as columns of this entity's table."""
        return [f for f in self.fields if not f.is_association]

    def filter_by_flag(self, flag: str) -> list[FieldDefinition]:
        """Fields carrying the given marker, in declaration order."""
        return [f for f in self.fields if f.has_flag(flag)]

    def get_field(self, name: str) -> FieldDefinition:
        """Get a field by property name.

        Raises:
            FieldNotFoundError: If the entity has no such field
        """
        for field in self.fields:
            if field.name == name:
                return field
        raise FieldNotFoundError(name, self.name, [f.name for f in self.fields])

    def find_field(self, name: str) -> FieldDefinition | None:
        """Get a field by property name, or None."""
        for field in self.fields:
            if field.name == name:
                return field
        return None

    def get_by_storage_name(self, storage_name: str) -> FieldDefinition | None:
        """Get the plain field stored in a column."""
        for field in self.columns:
            if field.storage_name == storage_name:
                return field
        return None


class SchemaSpec(BaseModel):
    """A schema document: the list of entities to register."""

    entities: list[EntityDefinition] = Field(default_factory=list)
