"""Input parsing utilities for CLI commands."""

from fkgraph.core.types import Flag

FLAG_ALIASES = {
    "cascade": Flag.CASCADE_DELETE,
    "restrict": Flag.RESTRICT_DELETE,
}


def parse_flag(value: str) -> str:
    """Map a short flag name to its marker; other markers pass through.

    Examples:
        "cascade" → "cascade_delete"
        "restrict" → "restrict_delete"
        "soft_delete" → "soft_delete"
    """
    return str(FLAG_ALIASES.get(value, value))


def parse_primary_key(spec: str) -> str | dict[str, str]:
    """Parse a primary key argument.

    Format: ``uuid`` for single-column keys, ``col=uuid[,col=uuid]...`` for
    composite keys.

    Examples:
        "4f0c..." → "4f0c..."
        "product_id=4f0c...,language_id=9a1b..." → {"product_id": "4f0c...", "language_id": "9a1b..."}

    Raises:
        ValueError: If a key part is malformed
    """
    if "=" not in spec:
        return spec.strip()

    key: dict[str, str] = {}
    for part in spec.split(","):
        if "=" not in part:
            raise ValueError(
                f"Invalid key part: '{part}'. Expected format: column=uuid[,column=uuid]..."
            )
        name, value = part.split("=", 1)
        name = name.strip()
        if not name:
            raise ValueError(f"Invalid key part: '{part}'. Column name is empty")
        key[name] = value.strip()
    return key
