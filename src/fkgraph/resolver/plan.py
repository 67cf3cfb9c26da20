"""Resolution query construction.

Walks the flagged associations of an entity (and, recursively, of the
entities they reference) and builds a single grouped SELECT that collects
every referencing id per root row:

    SELECT root.id AS root,
           aggregate_strings(hex(products.id), '||') AS "Category__products",
           ...
    FROM category AS "Category"
    LEFT OUTER JOIN product AS "Category__products" ON ...
    WHERE ("Category".id = :p1) OR ("Category".id = :p2)
    GROUP BY "Category".id

Each aggregated column is addressed by the dotted property path it was
joined through (``Category.products.media``); the decoder maps that path
back to its field. Aliases longer than the dialect allows are replaced by
short generated names (``t3``, ``c3``); the dotted path stays the key.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy import String, and_, func, or_, select
from sqlalchemy.dialects import registry as dialect_registry

from fkgraph.core.types import AssociationKind, AssociationPath

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement, FromClause, Select
    from sqlalchemy.engine.interfaces import Dialect

    from fkgraph.schema.definitions import EntityDefinition, FieldDefinition
    from fkgraph.schema.registry import SchemaRegistry

logger = logging.getLogger(__name__)

# Hex ids never contain a pipe
DELIMITER = "||"
ROOT_LABEL = "root"


def sql_name(path: str) -> str:
    """SQL-safe alias for a dotted path (SQLite strips dotted result names)."""
    return path.replace(".", "__")


@dataclass
class JoinedColumn:
    """An aggregated result column and the association it collects."""

    label: str
    path: str
    entity: str
    field: FieldDefinition
    depth: int


@dataclass
class ResolutionPlan:
    """A built resolution query plus what is needed to decode its rows."""

    entity: EntityDefinition
    flag: str
    root_alias: str
    statement: Select[Any]
    columns: list[JoinedColumn] = field(default_factory=list)
    dialect_name: str = "sqlite"

    def paths(self) -> list[AssociationPath]:
        """Associations joined by the query, in join order."""
        return [
            AssociationPath(
                path=column.path,
                entity=column.entity,
                field=column.field.name,
                association=column.field.association.value,
                target=column.field.mapping or column.field.reference or "",
                depth=column.depth,
            )
            for column in self.columns
        ]

    def to_sql(self, dialect: Dialect | None = None) -> str:
        """Compiled SQL text (bind parameters are not inlined).

        Defaults to the dialect the plan was built for.
        """
        if dialect is None:
            dialect = dialect_registry.load(self.dialect_name)()
        return str(self.statement.compile(dialect=dialect))


class PlanBuilder:
    """Builds the aggregate SELECT for one entity and one flag."""

    def __init__(self, registry: SchemaRegistry, dialect_name: str = "sqlite") -> None:
        """Initialize the builder.

        Args:
            registry: Schema registry to walk
            dialect_name: Dialect the statement will run on; selects how
                binary ids are hex-encoded
        """
        self._registry = registry
        self._dialect_name = dialect_name
        self._max_identifier_length = dialect_registry.load(dialect_name)().max_identifier_length

    def build(
        self,
        entity_name: str,
        flag: str,
        keys: list[dict[str, bytes]] | None = None,
    ) -> ResolutionPlan:
        """Build the resolution query.

        Args:
            entity_name: Root entity
            flag: Marker selecting which associations are followed
            keys: Primary key tuples (storage column -> binary id); None
                builds the query without a WHERE clause

        Returns:
            The plan; an entity without flagged associations still gets a
            query, it just joins nothing
        """
        entity = self._registry.get(entity_name)
        root_alias = entity.name
        root = self._registry.table(entity.name).alias(self._identifier(sql_name(root_alias), "t"))
        pk_columns = [root.c[pk.storage_name] for pk in entity.primary_keys]

        columns: list[JoinedColumn] = []
        projections: list[ColumnElement[Any]] = []
        from_clause = self._join_associations(
            entity,
            entity.filter_by_flag(flag),
            root_alias,
            root,
            root,
            flag,
            columns,
            projections,
            depth=1,
        )

        statement = select(pk_columns[0].label(ROOT_LABEL), *projections).select_from(from_clause)
        if keys:
            statement = statement.where(
                or_(*[and_(*[root.c[col] == value for col, value in key.items()]) for key in keys])
            )
        statement = statement.group_by(*pk_columns)

        logger.debug(
            f"Built {flag} plan for {entity.name}: {len(columns)} association(s) joined"
        )
        return ResolutionPlan(
            entity=entity,
            flag=str(flag),
            root_alias=root_alias,
            statement=statement,
            columns=columns,
            dialect_name=self._dialect_name,
        )

    def _join_associations(
        self,
        entity: EntityDefinition,
        fields: list[FieldDefinition],
        parent_path: str,
        parent: FromClause,
        from_clause: FromClause,
        flag: str,
        columns: list[JoinedColumn],
        projections: list[ColumnElement[Any]],
        depth: int,
    ) -> FromClause:
        for assoc in fields:
            if not assoc.is_association:
                continue

            path = f"{parent_path}.{assoc.name}"
            index = len(columns)
            label = self._identifier(sql_name(path), f"c{index}")

            if assoc.association == AssociationKind.MANY_TO_MANY:
                mapping = self._registry.table(assoc.mapping).alias(
                    self._identifier(f"{sql_name(path)}__mapping", f"t{index}m")
                )
                from_clause = from_clause.outerjoin(
                    mapping,
                    mapping.c[assoc.mapping_local_column] == parent.c[assoc.storage_name],
                )
                # local + reference hex, so nested links keep their own local side
                pair = self._hex(mapping.c[assoc.mapping_local_column]) + self._hex(
                    mapping.c[assoc.mapping_reference_column]
                )
                projections.append(func.aggregate_strings(pair, DELIMITER).label(label))
                columns.append(JoinedColumn(label, path, entity.name, assoc, depth))
                logger.debug(f"Joined {path} through mapping {assoc.mapping}")
                continue

            reference = self._registry.get(assoc.reference)
            target = self._registry.table(reference.name).alias(
                self._identifier(sql_name(path), f"t{index}")
            )
            if assoc.association == AssociationKind.ONE_TO_MANY:
                onclause = target.c[assoc.reference_field] == parent.c[assoc.storage_name]
            else:
                onclause = parent.c[assoc.storage_name] == target.c[assoc.reference_field]
            from_clause = from_clause.outerjoin(target, onclause)

            id_column = target.c[reference.primary_keys[0].storage_name]
            projections.append(func.aggregate_strings(self._hex(id_column), DELIMITER).label(label))
            columns.append(JoinedColumn(label, path, entity.name, assoc, depth))
            logger.debug(f"Joined {path} -> {reference.name}")

            # Stop at immediate self references; longer cycles are not detected
            if reference.name == entity.name:
                logger.debug(f"Not recursing into self reference {path}")
                continue

            from_clause = self._join_associations(
                reference,
                reference.filter_by_flag(flag),
                path,
                target,
                from_clause,
                flag,
                columns,
                projections,
                depth=depth + 1,
            )
        return from_clause

    def _hex(self, column: ColumnElement[Any]) -> ColumnElement[str]:
        if self._dialect_name == "postgresql":
            return func.encode(column, "hex", type_=String)
        return func.hex(column, type_=String)

    def _identifier(self, name: str, fallback: str) -> str:
        # Longer names are truncated by the server
        if len(name) <= self._max_identifier_length:
            return name
        return fallback
