"""Shared test fixtures for fkgraph."""

import json
import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy import Engine

from fkgraph import identifiers
from fkgraph.core.connection import DatabaseConnection
from fkgraph.resolver.resolver import ForeignKeyResolver
from fkgraph.schema.registry import SchemaRegistry

# A small storefront: categories own products (cascade), products own media
# (cascade), categories link tags through CategoryTag (restrict) and
# manufacturers are restricted by their products.
STOREFRONT_SCHEMA: dict[str, Any] = {
    "entities": [
        {
            "name": "Category",
            "table_name": "category",
            "fields": [
                {"name": "id", "flags": ["primary_key", "required"]},
                {"name": "parentId", "storage_name": "parent_id"},
                {"name": "name", "type": "string"},
                {
                    "name": "children",
                    "association": "one_to_many",
                    "reference": "Category",
                    "reference_field": "parent_id",
                    "flags": ["cascade_delete"],
                },
                {
                    "name": "products",
                    "association": "one_to_many",
                    "reference": "Product",
                    "reference_field": "category_id",
                    "flags": ["cascade_delete"],
                },
                {
                    "name": "media",
                    "association": "one_to_many",
                    "reference": "Media",
                    "reference_field": "category_id",
                    "flags": ["cascade_delete"],
                },
                {
                    "name": "tags",
                    "association": "many_to_many",
                    "reference": "Tag",
                    "mapping": "CategoryTag",
                    "mapping_local_column": "category_id",
                    "mapping_reference_column": "tag_id",
                    "flags": ["restrict_delete"],
                },
            ],
        },
        {
            "name": "Product",
            "table_name": "product",
            "fields": [
                {"name": "id", "flags": ["primary_key", "required"]},
                {"name": "categoryId", "storage_name": "category_id"},
                {"name": "manufacturerId", "storage_name": "manufacturer_id"},
                {"name": "name", "type": "string"},
                {
                    "name": "category",
                    "association": "many_to_one",
                    "reference": "Category",
                    "storage_name": "category_id",
                },
                {
                    "name": "manufacturer",
                    "association": "many_to_one",
                    "reference": "Manufacturer",
                    "storage_name": "manufacturer_id",
                    "flags": ["audit"],
                },
                {
                    "name": "media",
                    "association": "one_to_many",
                    "reference": "Media",
                    "reference_field": "product_id",
                    "flags": ["cascade_delete"],
                },
                {
                    "name": "tags",
                    "association": "many_to_many",
                    "reference": "Tag",
                    "mapping": "ProductTag",
                    "mapping_local_column": "product_id",
                    "mapping_reference_column": "tag_id",
                    "flags": ["cascade_delete"],
                },
            ],
        },
        {
            "name": "Media",
            "table_name": "media",
            "fields": [
                {"name": "id", "flags": ["primary_key", "required"]},
                {"name": "productId", "storage_name": "product_id"},
                {"name": "categoryId", "storage_name": "category_id"},
            ],
        },
        {
            "name": "Tag",
            "table_name": "tag",
            "fields": [
                {"name": "id", "flags": ["primary_key", "required"]},
                {"name": "name", "type": "string"},
            ],
        },
        {
            "name": "CategoryTag",
            "table_name": "category_tag",
            "fields": [
                {"name": "categoryId", "storage_name": "category_id", "flags": ["primary_key"]},
                {"name": "tagId", "storage_name": "tag_id", "flags": ["primary_key"]},
            ],
        },
        {
            "name": "ProductTag",
            "table_name": "product_tag",
            "fields": [
                {"name": "productId", "storage_name": "product_id", "flags": ["primary_key"]},
                {"name": "tagId", "storage_name": "tag_id", "flags": ["primary_key"]},
            ],
        },
        {
            "name": "Manufacturer",
            "table_name": "manufacturer",
            "fields": [
                {"name": "id", "flags": ["primary_key", "required"]},
                {
                    "name": "products",
                    "association": "one_to_many",
                    "reference": "Product",
                    "reference_field": "manufacturer_id",
                    "flags": ["restrict_delete"],
                },
            ],
        },
        {
            "name": "ProductTranslation",
            "table_name": "product_translation",
            "fields": [
                {"name": "productId", "storage_name": "product_id", "flags": ["primary_key"]},
                {"name": "languageId", "storage_name": "language_id", "flags": ["primary_key"]},
                {"name": "name", "type": "string"},
            ],
        },
    ]
}


@pytest.fixture
def registry() -> SchemaRegistry:
    """Registry for the storefront schema."""
    return SchemaRegistry.from_dict(STOREFRONT_SCHEMA)


@pytest.fixture
def schema_file(tmp_path: Path) -> str:
    """Storefront schema written to a JSON file."""
    path = tmp_path / "schema.json"
    path.write_text(json.dumps(STOREFRONT_SCHEMA))
    return str(path)


@pytest.fixture
def connection(registry: SchemaRegistry) -> Generator[DatabaseConnection, None, None]:
    """SQLite in-memory database with the storefront tables created."""
    conn = DatabaseConnection("sqlite:///:memory:")
    registry.create_all(conn.engine)
    yield conn
    conn.close()


@pytest.fixture
def resolver(registry: SchemaRegistry, connection: DatabaseConnection) -> ForeignKeyResolver:
    """Resolver bound to the in-memory storefront database."""
    return ForeignKeyResolver(registry, connection.engine)


@pytest.fixture
def insert(
    registry: SchemaRegistry, connection: DatabaseConnection
) -> Callable[..., dict[str, Any]]:
    """Insert a row; uuid values are given as text and stored as binary.

    Missing ``id`` columns get a fresh id. Returns the inserted values as text.
    """

    def _insert(entity_name: str, **values: Any) -> dict[str, Any]:
        entity = registry.get(entity_name)
        row: dict[str, Any] = {}
        if entity.get_by_storage_name("id") is not None and "id" not in values:
            values["id"] = identifiers.new_id()
        for column, value in values.items():
            field = entity.get_by_storage_name(column)
            assert field is not None, f"{entity_name} has no column {column}"
            if field.type == "uuid" and value is not None:
                row[column] = identifiers.to_bytes(value)
            else:
                row[column] = value
        engine: Engine = connection.engine
        with engine.begin() as conn:
            conn.execute(registry.table(entity_name).insert(), [row])
        return values

    return _insert


def _psycopg_available() -> bool:
    """Check if psycopg is installed."""
    try:
        import psycopg  # noqa: F401

        return True
    except ImportError:
        return False


@pytest.fixture
def postgresql_url() -> str:
    """PostgreSQL URL from TEST_DATABASE_URL; skips when unavailable."""
    url = os.environ.get("TEST_DATABASE_URL")
    if not url:
        pytest.skip("TEST_DATABASE_URL not set")
    if not _psycopg_available():
        pytest.skip("psycopg not installed")

    conn = DatabaseConnection(url)
    try:
        conn.test_connection()
    except Exception:
        pytest.skip(f"Cannot connect to PostgreSQL at {url}")
    finally:
        conn.close()
    return url
