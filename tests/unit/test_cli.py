"""CLI command tests for fkgraph."""

import json
import os
import tempfile
from collections.abc import Generator

import pytest
from typer.testing import CliRunner

from fkgraph import identifiers
from fkgraph.cli.main import app
from fkgraph.cli.parsing import parse_flag, parse_primary_key
from fkgraph.core.connection import DatabaseConnection
from fkgraph.schema.registry import SchemaRegistry

runner = CliRunner()

CATEGORY_ID = "11111111-1111-1111-1111-111111111111"


@pytest.fixture
def temp_db() -> Generator[str, None, None]:
    """Create a temporary SQLite database file."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    yield f"sqlite:///{db_path}"
    # Cleanup
    if os.path.exists(db_path):
        os.remove(db_path)


@pytest.fixture
def seeded_db(temp_db: str, schema_file: str) -> dict[str, str]:
    """File database with a category, one product and one linked tag."""
    registry = SchemaRegistry.load(schema_file)
    conn = DatabaseConnection(temp_db)
    registry.create_all(conn.engine)

    ids = {"category": CATEGORY_ID, "product": identifiers.new_id(), "tag": identifiers.new_id()}
    with conn.engine.begin() as c:
        c.execute(
            registry.table("Category").insert(),
            [{"id": identifiers.to_bytes(CATEGORY_ID), "name": "Shoes"}],
        )
        c.execute(
            registry.table("Product").insert(),
            [
                {
                    "id": identifiers.to_bytes(ids["product"]),
                    "category_id": identifiers.to_bytes(CATEGORY_ID),
                    "name": "Boot",
                }
            ],
        )
        c.execute(
            registry.table("Tag").insert(),
            [{"id": identifiers.to_bytes(ids["tag"]), "name": "Sale"}],
        )
        c.execute(
            registry.table("CategoryTag").insert(),
            [
                {
                    "category_id": identifiers.to_bytes(CATEGORY_ID),
                    "tag_id": identifiers.to_bytes(ids["tag"]),
                }
            ],
        )
    conn.close()
    return ids


class TestParsing:
    """Test argument parsing helpers."""

    def test_flag_aliases(self):
        assert parse_flag("cascade") == "cascade_delete"
        assert parse_flag("restrict") == "restrict_delete"
        assert parse_flag("audit") == "audit"

    def test_single_key(self):
        assert parse_primary_key(f" {CATEGORY_ID} ") == CATEGORY_ID

    def test_composite_key(self):
        assert parse_primary_key("product_id=a, language_id=b") == {
            "product_id": "a",
            "language_id": "b",
        }

    def test_malformed_composite_key(self):
        with pytest.raises(ValueError, match="Invalid key part"):
            parse_primary_key("product_id=a,language_id")

    def test_empty_column_name(self):
        with pytest.raises(ValueError, match="Column name is empty"):
            parse_primary_key("=a")


class TestVersionCommand:
    """Test the version command."""

    def test_version_output(self) -> None:
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "fkgraph v" in result.stdout


class TestSchemaCommands:
    """Test schema inspection commands."""

    def test_schema_list_json(self, schema_file: str) -> None:
        result = runner.invoke(app, ["-s", schema_file, "--json", "schema", "list"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert "Category" in data
        assert data == sorted(data)

    def test_schema_list_table(self, schema_file: str) -> None:
        result = runner.invoke(app, ["-s", schema_file, "schema", "list"])
        assert result.exit_code == 0
        assert "Category" in result.stdout

    def test_schema_describe_json(self, schema_file: str) -> None:
        result = runner.invoke(app, ["-s", schema_file, "--json", "schema", "describe", "Category"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["name"] == "Category"
        assert data["table_name"] == "category"

    def test_schema_describe_unknown(self, schema_file: str) -> None:
        result = runner.invoke(app, ["-s", schema_file, "--json", "schema", "describe", "Nope"])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["error"] == "EntityNotFoundError"

    def test_schema_validate(self, schema_file: str) -> None:
        result = runner.invoke(app, ["-s", schema_file, "--json", "schema", "validate"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["success"] is True

    def test_schema_validate_missing_file(self, tmp_path) -> None:
        missing = str(tmp_path / "missing.json")
        result = runner.invoke(app, ["-s", missing, "--json", "schema", "validate"])
        assert result.exit_code == 1
        assert "Schema file not found" in json.loads(result.stdout)["error"]

    def test_schema_init(self, schema_file: str, temp_db: str) -> None:
        result = runner.invoke(app, ["-d", temp_db, "-s", schema_file, "--json", "schema", "init"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert "category" in data["tables"]


class TestPlanCommand:
    """Test the plan command."""

    def test_plan_json(self, schema_file: str) -> None:
        result = runner.invoke(app, ["-s", schema_file, "--json", "plan", "Category"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["flag"] == "cascade_delete"
        assert "Category.products.media" in [p["path"] for p in data["paths"]]
        assert "sql" not in data

    def test_plan_sql_postgresql(self, schema_file: str) -> None:
        result = runner.invoke(
            app,
            ["-s", schema_file, "--json", "plan", "Category", "-f", "restrict", "--sql", "--dialect", "postgresql"],
        )
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [p["path"] for p in data["paths"]] == ["Category.tags"]
        assert "string_agg" in data["sql"]

    def test_plan_tree(self, schema_file: str) -> None:
        result = runner.invoke(app, ["-s", schema_file, "plan", "Category"])
        assert result.exit_code == 0
        assert "products" in result.stdout

    def test_plan_unknown_dialect(self, schema_file: str) -> None:
        result = runner.invoke(app, ["-s", schema_file, "--json", "plan", "Category", "--dialect", "oracle"])
        assert result.exit_code == 1


class TestResolveCommands:
    """Test resolve commands against a file database."""

    def test_resolve_cascades(self, schema_file: str, temp_db: str, seeded_db: dict) -> None:
        result = runner.invoke(
            app, ["-d", temp_db, "-s", schema_file, "--json", "resolve", "cascades", "Category", CATEGORY_ID]
        )
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data == [{"pk": CATEGORY_ID, "restrictions": {"Product": [seeded_db["product"]]}}]

    def test_resolve_restrictions(self, schema_file: str, temp_db: str, seeded_db: dict) -> None:
        result = runner.invoke(
            app,
            ["-d", temp_db, "-s", schema_file, "--json", "resolve", "restrictions", "Category", CATEGORY_ID],
        )
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data[0]["restrictions"] == {
            "CategoryTag": [{"categoryId": CATEGORY_ID, "tagId": seeded_db["tag"]}]
        }

    def test_resolve_custom_flag(self, schema_file: str, temp_db: str, seeded_db: dict) -> None:
        result = runner.invoke(
            app,
            ["-d", temp_db, "-s", schema_file, "--json", "resolve", "flag", "audit", "Product", seeded_db["product"]],
        )
        assert result.exit_code == 0
        assert json.loads(result.stdout) == []

    def test_resolve_table_counts(self, schema_file: str, temp_db: str, seeded_db: dict) -> None:
        result = runner.invoke(
            app, ["-d", temp_db, "-s", schema_file, "resolve", "cascades", "Category", CATEGORY_ID]
        )
        assert result.exit_code == 0
        assert "1 affected record(s)" in result.stdout

    def test_resolve_nothing_found(self, schema_file: str, temp_db: str, seeded_db: dict) -> None:
        other = identifiers.new_id()
        result = runner.invoke(
            app, ["-d", temp_db, "-s", schema_file, "resolve", "cascades", "Category", other]
        )
        assert result.exit_code == 0
        assert "No references found." in result.stdout

    def test_resolve_invalid_key(self, schema_file: str, temp_db: str, seeded_db: dict) -> None:
        result = runner.invoke(
            app, ["-d", temp_db, "-s", schema_file, "--json", "resolve", "cascades", "Category", "nope"]
        )
        assert result.exit_code == 1
        assert json.loads(result.stdout)["error"] == "InvalidPrimaryKeyError"
