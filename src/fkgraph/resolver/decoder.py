"""Decoding of aggregated resolution rows into AffectedRecord objects."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from fkgraph import identifiers
from fkgraph.core.types import AffectedRecord, AssociationKind, RestrictionEntry
from fkgraph.exceptions import UnknownFieldError
from fkgraph.resolver.plan import DELIMITER, ROOT_LABEL

if TYPE_CHECKING:
    from fkgraph.resolver.plan import ResolutionPlan
    from fkgraph.schema.registry import SchemaRegistry


def split_aggregate(value: Any) -> list[str]:
    """Split an aggregated column into its non-empty segments.

    NULL, ``''`` and a string of only delimiters all mean "no values".
    Backends returning native arrays are accepted as well.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v]
    return [segment for segment in str(value).split(DELIMITER) if segment]


def _root_id(value: Any) -> str:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return identifiers.from_bytes(value)
    return identifiers.normalize(str(value))


class ResultDecoder:
    """Turns grouped result rows back into a typed restriction tree."""

    def __init__(self, registry: SchemaRegistry) -> None:
        self._registry = registry

    def decode(
        self, plan: ResolutionPlan, rows: Iterable[Mapping[str, Any]]
    ) -> list[AffectedRecord]:
        """Decode rows of a resolution query.

        Rows without any referencing ids are dropped.

        Raises:
            UnknownFieldError: If a column path no longer maps to a field
        """
        mapped: list[AffectedRecord] = []

        for row in rows:
            pk = _root_id(row[ROOT_LABEL])
            restrictions: dict[str, list[RestrictionEntry]] = {}

            for column in plan.columns:
                values = split_aggregate(row[column.label])
                if not values:
                    continue

                field = self._registry.get_field(column.path, plan.entity.name, plan.root_alias)
                if field is None:
                    raise UnknownFieldError(column.path, plan.entity.name)

                if field.association == AssociationKind.MANY_TO_MANY:
                    mapping = self._registry.get(field.mapping)
                    source = mapping.get_by_storage_name(field.mapping_local_column)
                    target = mapping.get_by_storage_name(field.mapping_reference_column)
                    if source is None or target is None:
                        raise UnknownFieldError(column.path, plan.entity.name)

                    entries = restrictions.setdefault(mapping.name, [])
                    for value in values:
                        local, reference = (
                            value[: identifiers.HEX_LENGTH],
                            value[identifiers.HEX_LENGTH :],
                        )
                        entries.append(
                            {
                                source.name: identifiers.from_hex(local),
                                target.name: identifiers.from_hex(reference),
                            }
                        )
                    continue

                restrictions.setdefault(field.reference, []).extend(
                    identifiers.from_hex(value) for value in values
                )

            if not restrictions:
                continue
            mapped.append(AffectedRecord(pk=pk, restrictions=restrictions))

        return mapped
