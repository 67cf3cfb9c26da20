"""Cascade / restriction resolution commands."""

from typing import Annotated

import typer

from fkgraph.cli.context import CLIContext
from fkgraph.cli.output import OutputFormatter
from fkgraph.cli.parsing import parse_flag, parse_primary_key
from fkgraph.core.types import Flag
from fkgraph.resolver.resolver import ForeignKeyResolver

# Create resolve subcommand group
app = typer.Typer(help="Resolve cascade deletes and delete restrictions")

IdsArgument = Annotated[
    list[str],
    typer.Argument(help="Primary keys: uuid, or col=uuid,col=uuid for composite keys"),
]


def _run(ctx: typer.Context, entity_name: str, ids: list[str], flag: str) -> None:
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        keys = [parse_primary_key(spec) for spec in ids]
        resolver = ForeignKeyResolver(cli_ctx.get_registry(), cli_ctx.get_connection().engine)
        records = resolver.resolve(entity_name, keys, flag)
        formatter.print_records(records)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("cascades")
def resolve_cascades(
    ctx: typer.Context,
    entity_name: Annotated[str, typer.Argument(help="Entity name")],
    ids: IdsArgument,
) -> None:
    """List records that would be deleted along with the given keys.

    Examples:

        fkgraph resolve cascades Category 11111111-1111-1111-1111-111111111111
    """
    _run(ctx, entity_name, ids, Flag.CASCADE_DELETE)


@app.command("restrictions")
def resolve_restrictions(
    ctx: typer.Context,
    entity_name: Annotated[str, typer.Argument(help="Entity name")],
    ids: IdsArgument,
) -> None:
    """List records that block deleting the given keys.

    Examples:

        fkgraph resolve restrictions Customer 4f0c...
    """
    _run(ctx, entity_name, ids, Flag.RESTRICT_DELETE)


@app.command("flag")
def resolve_flag(
    ctx: typer.Context,
    flag: Annotated[str, typer.Argument(help="Field marker to follow")],
    entity_name: Annotated[str, typer.Argument(help="Entity name")],
    ids: IdsArgument,
) -> None:
    """Resolve references along associations carrying a custom marker."""
    _run(ctx, entity_name, ids, parse_flag(flag))
