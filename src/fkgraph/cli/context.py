"""CLI context management for database connections and shared state."""

import os
from dataclasses import dataclass, field

from fkgraph.core.connection import DatabaseConnection
from fkgraph.schema.registry import SchemaRegistry


def get_database_url(url: str | None) -> str:
    """Resolve database URL from CLI arg, environment variable, or default.

    Priority:
    1. Explicit URL argument
    2. FKGRAPH_URL environment variable
    3. Default: sqlite:///./fkgraph.db
    """
    if url:
        return url
    if env_url := os.getenv("FKGRAPH_URL"):
        return env_url
    return "sqlite:///./fkgraph.db"


def get_schema_path(path: str | None) -> str:
    """Resolve schema file from CLI arg, FKGRAPH_SCHEMA, or ./schema.json."""
    if path:
        return path
    if env_path := os.getenv("FKGRAPH_SCHEMA"):
        return env_path
    return "./schema.json"


@dataclass
class CLIContext:
    """Shared context for CLI commands.

    Loads the schema and opens the database lazily, so commands that only
    inspect the schema never touch the database.
    """

    database_url: str
    schema_path: str
    echo: bool
    json_output: bool
    _registry: SchemaRegistry | None = field(default=None, init=False, repr=False)
    _connection: DatabaseConnection | None = field(default=None, init=False, repr=False)

    def get_registry(self) -> SchemaRegistry:
        """Get the schema registry (loaded on first use)."""
        if self._registry is None:
            self._registry = SchemaRegistry.load(self.schema_path)
        return self._registry

    def get_connection(self) -> DatabaseConnection:
        """Get or create the database connection (lazy initialization)."""
        if self._connection is None:
            self._connection = DatabaseConnection(self.database_url, echo=self.echo)
        return self._connection

    def close(self) -> None:
        """Close database connection if open."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
