"""Foreign-key cascade / restriction resolver."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from sqlalchemy import Connection

from fkgraph import identifiers
from fkgraph.core.types import AffectedRecord, Flag
from fkgraph.exceptions import InvalidPrimaryKeyError, RestrictDeleteError
from fkgraph.resolver.decoder import ResultDecoder
from fkgraph.resolver.plan import PlanBuilder, ResolutionPlan

if TYPE_CHECKING:
    from sqlalchemy import Engine, Select

    from fkgraph.schema.definitions import EntityDefinition
    from fkgraph.schema.registry import SchemaRegistry

logger = logging.getLogger(__name__)

PrimaryKeyInput = str | Mapping[str, str]


class ForeignKeyResolver:
    """Finds the records a delete would cascade to or be restricted by.

    Example::

        resolver = ForeignKeyResolver(registry, engine)
        resolver.resolve_cascades("Category", [{"id": category_id}])
        # [{"pk": category_id, "restrictions": {"Product": [product_id, ...]}}]

    Every call builds its own query and issues exactly one SELECT; nothing
    is written. Pass a ``Connection`` instead of an ``Engine`` to run inside
    a transaction you manage (e.g. together with the delete that follows).
    """

    def __init__(self, registry: SchemaRegistry, bind: Engine | Connection) -> None:
        """Initialize the resolver.

        Args:
            registry: Schema registry describing the entities
            bind: Engine (a connection is checked out per call) or an open
                Connection (used as-is, transaction left to the caller)
        """
        self._registry = registry
        self._bind = bind
        self._decoder = ResultDecoder(registry)

    @property
    def registry(self) -> SchemaRegistry:
        return self._registry

    def resolve_restrictions(
        self, entity_name: str, ids: Sequence[PrimaryKeyInput]
    ) -> list[AffectedRecord]:
        """Records that restrict deleting the given primary keys.

        Returns:
            One AffectedRecord per primary key with at least one restricting
            reference, e.g.::

                [AffectedRecord(pk="43c6baad-...", restrictions={
                    "Order": ["1ffd7ea9-...", "1ffd7ea9-..."],
                })]

        Raises:
            EntityNotFoundError: If the entity is not registered
            InvalidPrimaryKeyError: If the id tuples are malformed
            UnknownFieldError: If decoding hits a column the schema cannot explain
        """
        return self.resolve(entity_name, ids, Flag.RESTRICT_DELETE)

    def resolve_cascades(
        self, entity_name: str, ids: Sequence[PrimaryKeyInput]
    ) -> list[AffectedRecord]:
        """Records that would be cascade-deleted with the given primary keys.

        Same contract as resolve_restrictions, following cascade-flagged
        associations instead.
        """
        return self.resolve(entity_name, ids, Flag.CASCADE_DELETE)

    def resolve(
        self, entity_name: str, ids: Sequence[PrimaryKeyInput], flag: str
    ) -> list[AffectedRecord]:
        """Resolve references along associations carrying any marker."""
        entity = self._registry.get(entity_name)
        keys = self._normalize_keys(entity, ids)
        if not keys:
            return []

        plan = self._builder().build(entity.name, flag, keys)
        rows = self._fetch(plan.statement)
        records = self._decoder.decode(plan, rows)

        logger.debug(
            f"Resolved {flag} for {len(keys)} {entity.name} key(s): "
            f"{len(records)} with references"
        )
        return records

    def ensure_deletable(self, entity_name: str, ids: Sequence[PrimaryKeyInput]) -> None:
        """Raise if any restricting reference exists for the given keys.

        Raises:
            RestrictDeleteError: With per-key counts of the blocking entities
        """
        records = self.resolve_restrictions(entity_name, ids)
        if not records:
            return
        logger.debug(
            f"Delete of {entity_name} blocked by "
            f"{sum(record.count() for record in records)} reference(s)"
        )
        raise RestrictDeleteError(
            entity_name,
            {
                record.pk: {name: len(entries) for name, entries in record.restrictions.items()}
                for record in records
            },
        )

    def plan(
        self,
        entity_name: str,
        flag: str = Flag.CASCADE_DELETE,
        ids: Sequence[PrimaryKeyInput] | None = None,
    ) -> ResolutionPlan:
        """Build (but do not run) the resolution query."""
        entity = self._registry.get(entity_name)
        keys = self._normalize_keys(entity, ids) if ids else None
        return self._builder().build(entity.name, flag, keys)

    def _builder(self) -> PlanBuilder:
        return PlanBuilder(self._registry, self._bind.dialect.name)

    def _fetch(self, statement: Select[Any]) -> list[Any]:
        if isinstance(self._bind, Connection):
            return list(self._bind.execute(statement).mappings().all())
        with self._bind.connect() as conn:
            return list(conn.execute(statement).mappings().all())

    def _normalize_keys(
        self, entity: EntityDefinition, ids: Sequence[PrimaryKeyInput]
    ) -> list[dict[str, bytes]]:
        """Validate id tuples and convert them to storage column -> binary id.

        All tuples must name exactly the entity's primary-key fields, by
        property or storage name.

        Raises:
            InvalidPrimaryKeyError: On mixed key shapes, unknown or missing
                key fields, or values that are not UUIDs
        """
        pk_fields = entity.primary_keys
        expected = [f.name for f in pk_fields]
        by_name = {f.name: f for f in pk_fields}
        by_name.update({f.storage_name: f for f in pk_fields if f.storage_name not in by_name})

        keys: list[dict[str, bytes]] = []
        shape: frozenset[str] | None = None

        for pk in ids:
            if isinstance(pk, str):
                if len(pk_fields) != 1:
                    raise InvalidPrimaryKeyError(
                        entity.name, "a bare id needs a single-column primary key", expected
                    )
                pk = {pk_fields[0].name: pk}

            fields = {}
            for key, value in pk.items():
                pk_field = by_name.get(key)
                if pk_field is None:
                    raise InvalidPrimaryKeyError(
                        entity.name, f"'{key}' is not a primary key field", expected
                    )
                fields[pk_field.name] = (pk_field, value)

            current = frozenset(fields)
            if shape is None:
                shape = current
            elif current != shape:
                raise InvalidPrimaryKeyError(
                    entity.name,
                    f"mixed key shapes {sorted(shape)} and {sorted(current)}",
                    expected,
                )
            if current != frozenset(expected):
                raise InvalidPrimaryKeyError(
                    entity.name, f"incomplete key {sorted(current)}", expected
                )

            key_bytes: dict[str, bytes] = {}
            for name in expected:
                pk_field, value = fields[name]
                try:
                    key_bytes[pk_field.storage_name] = identifiers.to_bytes(value)
                except (ValueError, TypeError, AttributeError) as e:
                    raise InvalidPrimaryKeyError(
                        entity.name, f"'{value}' is not a valid id for '{name}'", expected
                    ) from e
            keys.append(key_bytes)

        return keys
