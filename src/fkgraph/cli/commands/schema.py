"""Schema inspection commands."""

from typing import Annotated

import typer

from fkgraph.cli.context import CLIContext
from fkgraph.cli.output import OutputFormatter

# Create schema subcommand group
app = typer.Typer(help="Inspect the entity schema")


@app.command("list")
def schema_list(ctx: typer.Context) -> None:
    """List all entities in the schema file."""
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        registry = cli_ctx.get_registry()
        entities = registry.list_entities()

        if cli_ctx.json_output:
            formatter.print_data(entities)
        else:
            table_data = []
            for name in entities:
                entity = registry.get(name)
                table_data.append(
                    {
                        "Name": entity.name,
                        "Table": entity.table_name,
                        "Fields": len(entity.fields),
                        "Associations": sum(1 for f in entity.fields if f.is_association),
                    }
                )
            formatter.print_table(
                f"Entities ({len(entities)} total)",
                table_data,
                ["Name", "Table", "Fields", "Associations"],
            )
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)


@app.command("describe")
def schema_describe(
    ctx: typer.Context,
    entity_name: Annotated[str, typer.Argument(help="Entity name")],
) -> None:
    """Show fields, associations and flags of an entity."""
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        entity = cli_ctx.get_registry().get(entity_name)
        formatter.print_entity(entity)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)


@app.command("validate")
def schema_validate(ctx: typer.Context) -> None:
    """Check that every association points at declared entities and columns."""
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        # Loading validates the document and all references
        registry = cli_ctx.get_registry()
        formatter.print_success(
            "Schema is valid",
            {"schema": cli_ctx.schema_path, "entities": len(registry.list_entities())},
        )
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)


@app.command("init")
def schema_init(ctx: typer.Context) -> None:
    """Create tables for every entity in the database.

    Examples:

        fkgraph -d sqlite:///./shop.db -s schema.json schema init
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        registry = cli_ctx.get_registry()
        tables = registry.create_all(cli_ctx.get_connection().engine)
        formatter.print_success(f"Created {len(tables)} table(s)", {"tables": tables})
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()
