"""Schema registry: the metadata provider the resolver walks.

Maps entity names to their definitions, resolves dotted alias paths back to
fields and builds SQLAlchemy ``Table`` objects for registered entities.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    LargeBinary,
    MetaData,
    String,
    Table,
    Text,
)

from fkgraph.core.types import AssociationKind, Flag
from fkgraph.exceptions import EntityNotFoundError, SchemaError
from fkgraph.schema.definitions import EntityDefinition, FieldDefinition, SchemaSpec

if TYPE_CHECKING:
    from sqlalchemy import Connection, Engine

logger = logging.getLogger(__name__)

# Mapping from field types to SQLAlchemy column types
FIELD_TYPE_MAP = {
    "uuid": lambda: LargeBinary(16),
    "string": lambda: String(255),
    "text": lambda: Text(),
    "int": lambda: Integer(),
    "float": lambda: Float(),
    "bool": lambda: Boolean(),
    "datetime": lambda: DateTime(timezone=True),
    "json": lambda: JSON(),
}


class SchemaRegistry:
    """In-memory registry of entity definitions."""

    def __init__(self, entities: list[EntityDefinition] | None = None) -> None:
        self._entities: dict[str, EntityDefinition] = {}
        self._metadata = MetaData()
        self._tables: dict[str, Table] = {}
        for entity in entities or []:
            self.register(entity)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SchemaRegistry:
        """Build a registry from a schema document.

        Format::

            {"entities": [{"name": "Category", "fields": [...]}, ...]}

        Raises:
            SchemaError: If the document does not describe a valid schema
        """
        try:
            spec = SchemaSpec.model_validate(data)
        except ValidationError as e:
            raise SchemaError(
                f"Invalid schema document: {e.error_count()} error(s)",
                {"errors": [err["msg"] for err in e.errors()]},
            ) from e

        registry = cls(spec.entities)
        registry.validate()
        return registry

    @classmethod
    def load(cls, path: str | Path) -> SchemaRegistry:
        """Load a registry from a JSON schema file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            SchemaError: If the file does not describe a valid schema
        """
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Schema file not found: {path}")

        with file_path.open("r") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise SchemaError(f"Schema file '{path}' is not valid JSON: {e.msg}") from e

        logger.debug(f"Loaded schema document from {file_path}")
        return cls.from_dict(data)

    def register(self, entity: EntityDefinition) -> EntityDefinition:
        """Register an entity definition.

        Raises:
            SchemaError: If an entity with the same name is already registered
        """
        if entity.name in self._entities:
            raise SchemaError(
                f"Entity '{entity.name}' is already registered",
                {"entity_name": entity.name},
            )
        self._entities[entity.name] = entity
        return entity

    def validate(self) -> None:
        """Check that every association points at registered entities and columns.

        Raises:
            SchemaError: On the first dangling reference
        """
        for entity in self._entities.values():
            for field in entity.fields:
                if not field.is_association:
                    continue
                self._check_reference(entity, field)

    def _check_reference(self, entity: EntityDefinition, field: FieldDefinition) -> None:
        where = f"{entity.name}.{field.name}"
        if field.reference not in self._entities:
            raise SchemaError(
                f"Association '{where}' references unknown entity '{field.reference}'",
                {"field": where, "available_entities": self.list_entities()},
            )

        # Local side of the join, for every association kind
        self._check_join_column(where, entity, field.storage_name)

        if field.association == AssociationKind.MANY_TO_MANY:
            if field.mapping not in self._entities:
                raise SchemaError(
                    f"Association '{where}' uses unknown mapping entity '{field.mapping}'",
                    {"field": where, "available_entities": self.list_entities()},
                )
            mapping = self._entities[field.mapping]
            for column in (field.mapping_local_column, field.mapping_reference_column):
                if mapping.get_by_storage_name(column) is None:
                    raise SchemaError(
                        f"Mapping entity '{mapping.name}' has no column '{column}' "
                        f"required by '{where}'",
                        {"field": where, "column": column},
                    )
            return

        self._check_join_column(where, self._entities[field.reference], field.reference_field)

    def _check_join_column(
        self, where: str, target: EntityDefinition, column: str | None
    ) -> None:
        if column is None or target.get_by_storage_name(column) is None:
            raise SchemaError(
                f"Association '{where}' joins on '{target.name}.{column}', "
                "which is not a declared column",
                {"field": where, "column": column},
            )

    def list_entities(self) -> list[str]:
        """Registered entity names, sorted."""
        return sorted(self._entities)

    def get(self, entity_name: str) -> EntityDefinition:
        """Get an entity definition.

        Raises:
            EntityNotFoundError: If the entity is not registered
        """
        entity = self._entities.get(entity_name)
        if entity is None:
            raise EntityNotFoundError(entity_name, self.list_entities())
        return entity

    def __contains__(self, entity_name: object) -> bool:
        return entity_name in self._entities

    def get_fields(self, entity_name: str) -> list[FieldDefinition]:
        """Ordered field list of an entity."""
        return list(self.get(entity_name).fields)

    def get_field(
        self, storage_alias: str, entity_name: str, root_alias: str
    ) -> FieldDefinition | None:
        """Resolve a dotted alias path back to the field it was built from.

        ``Category.products.media`` with root ``Category`` walks
        Category.products -> Product.media and returns the ``media`` field.

        Returns:
            The field, or None if the path does not match the schema
        """
        prefix = f"{root_alias}."
        if not storage_alias.startswith(prefix):
            return None

        parts = storage_alias[len(prefix) :].split(".")
        entity = self._entities.get(entity_name)
        field: FieldDefinition | None = None
        for part in parts:
            if entity is None:
                return None
            field = entity.find_field(part)
            if field is None or not field.is_association:
                return None
            entity = self._entities.get(field.reference or "")
        return field

    def table(self, entity_name: str) -> Table:
        """SQLAlchemy table for an entity (built once, then cached)."""
        if entity_name not in self._tables:
            entity = self.get(entity_name)
            columns: list[Column[Any]] = []
            for field in entity.columns:
                col_type = FIELD_TYPE_MAP.get(field.type, lambda: String(255))()
                columns.append(
                    Column(
                        field.storage_name,
                        col_type,
                        primary_key=field.is_primary_key,
                        nullable=not (field.is_primary_key or field.has_flag(Flag.REQUIRED)),
                    )
                )
            self._tables[entity_name] = Table(entity.table_name, self._metadata, *columns)
        return self._tables[entity_name]

    def create_all(self, bind: Engine | Connection) -> list[str]:
        """Create tables for every registered entity.

        Returns:
            Names of the tables in the schema
        """
        tables = [self.table(name) for name in self.list_entities()]
        self._metadata.create_all(bind, tables=tables)
        return [t.name for t in tables]
