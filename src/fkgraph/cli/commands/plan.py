"""Resolution plan command."""

from typing import Annotated

import typer

from fkgraph.cli.context import CLIContext
from fkgraph.cli.output import OutputFormatter, console
from fkgraph.cli.parsing import parse_flag
from fkgraph.resolver.plan import PlanBuilder


def plan_command(
    ctx: typer.Context,
    entity_name: Annotated[str, typer.Argument(help="Root entity")],
    flag: Annotated[
        str,
        typer.Option("--flag", "-f", help="cascade, restrict or any custom field marker"),
    ] = "cascade",
    sql: Annotated[
        bool,
        typer.Option("--sql", help="Also print the generated SQL"),
    ] = False,
    dialect: Annotated[
        str,
        typer.Option("--dialect", help="Dialect to render SQL for (sqlite, postgresql, mysql)"),
    ] = "sqlite",
) -> None:
    """Show which associations a resolution would join.

    Only reads the schema file; no database connection is made.

    Examples:

        fkgraph plan Category --flag cascade

        fkgraph plan Category --flag restrict --sql --dialect postgresql
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        from sqlalchemy.dialects import mysql, postgresql, sqlite

        dialects = {
            "sqlite": sqlite.dialect(),
            "postgresql": postgresql.dialect(),
            "mysql": mysql.dialect(),
        }
        if dialect not in dialects:
            raise typer.BadParameter(
                f"Unknown dialect '{dialect}'. Valid dialects: {', '.join(dialects)}"
            )

        marker = parse_flag(flag)
        plan = PlanBuilder(cli_ctx.get_registry(), dialect).build(entity_name, marker)
        sql_text = plan.to_sql(dialects[dialect]) if sql else None

        if cli_ctx.json_output:
            output = {
                "entity": entity_name,
                "flag": marker,
                "paths": [p.model_dump() for p in plan.paths()],
            }
            if sql_text is not None:
                output["sql"] = sql_text
            formatter.print_data(output)
        else:
            formatter.print_paths(entity_name, marker, plan.paths())
            if sql_text is not None:
                console.print(f"\n{sql_text}")
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
