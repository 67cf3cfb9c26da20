"""fkgraph CLI - Main entry point."""

import logging
import sys
from typing import Annotated

import typer

import fkgraph
from fkgraph.cli.context import CLIContext, get_database_url, get_schema_path

# Create main Typer app
app = typer.Typer(
    name="fkgraph",
    help="fkgraph CLI - inspect cascade deletes and delete restrictions",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    database: Annotated[
        str | None,
        typer.Option(
            "--database",
            "-d",
            envvar="FKGRAPH_URL",
            help="Database URL (SQLite, PostgreSQL or MySQL)",
        ),
    ] = None,
    schema: Annotated[
        str | None,
        typer.Option(
            "--schema",
            "-s",
            envvar="FKGRAPH_SCHEMA",
            help="Path to the JSON schema document",
        ),
    ] = None,
    echo: Annotated[
        bool,
        typer.Option(
            "--echo",
            "-e",
            help="Echo SQL statements to console",
        ),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            "-j",
            help="Output as JSON (machine-readable)",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Log association walk details to stderr",
        ),
    ] = False,
) -> None:
    """Initialize CLI context with global options."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )

    ctx.obj = CLIContext(
        database_url=get_database_url(database),
        schema_path=get_schema_path(schema),
        echo=echo,
        json_output=json_output,
    )


@app.command()
def version() -> None:
    """Show version information."""
    typer.echo(f"fkgraph v{fkgraph.__version__}")


# Register command groups
from fkgraph.cli.commands import plan, resolve, schema  # noqa: E402

app.add_typer(schema.app, name="schema")
app.add_typer(resolve.app, name="resolve")

# Register plan as a standalone command (not a group)
app.command(name="plan")(plan.plan_command)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
