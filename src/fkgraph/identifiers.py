"""Identifier codec.

Ids are UUIDs. They travel through the public API as canonical lower-case
text, are stored as 16-byte binary columns and come back from aggregate
queries as hex strings.
"""

from __future__ import annotations

from uuid import UUID, uuid4

BINARY_LENGTH = 16
HEX_LENGTH = 32


def new_id() -> str:
    """Generate a new id as canonical text."""
    return str(uuid4())


def normalize(value: str) -> str:
    """Return the canonical text form of an id.

    Raises:
        ValueError: If value is not a UUID
    """
    return str(UUID(value))


def to_bytes(value: str) -> bytes:
    """Convert canonical (or hex) text to fixed-width binary.

    Raises:
        ValueError: If value is not a UUID
    """
    return UUID(value).bytes


def from_bytes(value: bytes) -> str:
    """Convert a 16-byte binary id to canonical text."""
    return str(UUID(bytes=bytes(value)))


def from_hex(value: str) -> str:
    """Convert a 32 character hex string (any case) to canonical text."""
    return str(UUID(hex=value))
