"""Custom exceptions for fkgraph.

Errors carry an actionable message plus a machine-readable ``context`` dict,
so callers (and the CLI in ``--json`` mode) can report what went wrong and
what the valid options were.
"""

from __future__ import annotations

from typing import Any


class FkGraphError(Exception):
    """Base exception for all fkgraph errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Return error as JSON-serializable dict."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
        }


class ConnectionError(FkGraphError):
    """Failed to connect to the database."""

    pass


class SchemaError(FkGraphError):
    """An entity or field definition is invalid."""

    pass


class EntityNotFoundError(FkGraphError):
    """Entity is not registered in the schema."""

    def __init__(self, entity_name: str, available_entities: list[str] | None = None) -> None:
        available = available_entities or []
        if available:
            message = (
                f"Entity '{entity_name}' not found. Available entities: {', '.join(available)}"
            )
        else:
            message = f"Entity '{entity_name}' not found. No entities are registered."

        super().__init__(message, {"entity_name": entity_name, "available_entities": available})
        self.entity_name = entity_name
        self.available_entities = available


class FieldNotFoundError(FkGraphError):
    """Field does not exist on entity."""

    def __init__(
        self, field_name: str, entity_name: str, available_fields: list[str] | None = None
    ) -> None:
        available = available_fields or []
        if available:
            message = (
                f"Field '{field_name}' not found on '{entity_name}'. "
                f"Available fields: {', '.join(available)}"
            )
        else:
            message = f"Field '{field_name}' not found on '{entity_name}'. No fields defined."

        super().__init__(
            message,
            {
                "field_name": field_name,
                "entity_name": entity_name,
                "available_fields": available,
            },
        )
        self.field_name = field_name
        self.entity_name = entity_name
        self.available_fields = available


class UnknownFieldError(FkGraphError):
    """A result column alias does not map back to a declared field.

    This means the schema used to build the query and the schema used to
    decode it disagree; it is never caused by row data.
    """

    def __init__(self, alias: str, entity_name: str) -> None:
        message = (
            f"Field by key '{alias}' not found while decoding '{entity_name}'. "
            "The schema registry changed between query construction and decoding."
        )
        super().__init__(message, {"alias": alias, "entity_name": entity_name})
        self.alias = alias
        self.entity_name = entity_name


class InvalidPrimaryKeyError(FkGraphError):
    """Primary key input is malformed or inconsistent."""

    def __init__(
        self,
        entity_name: str,
        reason: str,
        expected_keys: list[str] | None = None,
    ) -> None:
        expected = expected_keys or []
        message = f"Invalid primary key for '{entity_name}': {reason}"
        if expected:
            message = f"{message}. Expected keys: {', '.join(expected)}"
        super().__init__(
            message,
            {"entity_name": entity_name, "reason": reason, "expected_keys": expected},
        )
        self.entity_name = entity_name
        self.reason = reason
        self.expected_keys = expected


class RestrictDeleteError(FkGraphError):
    """Delete is blocked because restricting references still exist."""

    def __init__(self, entity_name: str, restrictions: dict[str, dict[str, int]]) -> None:
        # restrictions: pk -> {referencing entity -> count}
        blocked = sorted({name for counts in restrictions.values() for name in counts})
        total = sum(sum(counts.values()) for counts in restrictions.values())
        message = (
            f"Cannot delete {entity_name}: {total} related record(s) in "
            f"{', '.join(blocked)} restrict the delete. Delete related records first."
        )
        super().__init__(
            message,
            {
                "entity_name": entity_name,
                "restrictions": restrictions,
                "related_entities": blocked,
                "related_count": total,
                "suggestion": "Remove or reassign the referencing records, then retry the delete",
            },
        )
        self.entity_name = entity_name
        self.restrictions = restrictions
        self.related_entities = blocked
        self.count = total
