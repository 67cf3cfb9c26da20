"""Output formatting for CLI commands."""

import json
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from fkgraph.core.types import AffectedRecord, AssociationPath
from fkgraph.exceptions import FkGraphError
from fkgraph.schema.definitions import EntityDefinition

console = Console()


class OutputFormatter:
    """Formats output for terminal or JSON mode."""

    def __init__(self, json_mode: bool = False) -> None:
        """Initialize formatter.

        Args:
            json_mode: If True, output JSON instead of Rich formatting
        """
        self.json_mode = json_mode

    def print_table(
        self,
        title: str,
        data: list[dict[str, Any]],
        columns: list[str],
    ) -> None:
        """Print data as Rich table or JSON array."""
        if self.json_mode:
            print(json.dumps(data, default=str, indent=2))
        else:
            table = Table(title=title, show_header=True, header_style="bold magenta")
            for col in columns:
                table.add_column(col)
            for row in data:
                table.add_row(*[str(row.get(col, "")) for col in columns])
            console.print(table)

    def print_entity(self, entity: EntityDefinition) -> None:
        """Print an entity definition with its fields and associations."""
        if self.json_mode:
            print(json.dumps(entity.model_dump(mode="json"), default=str, indent=2))
            return

        console.print(f"\n[bold]Entity:[/bold] {entity.name}")
        console.print(f"Table: {entity.table_name}")
        console.print(f"Primary key: {', '.join(f.name for f in entity.primary_keys)}")
        if entity.description:
            console.print(f"Description: {entity.description}")

        if entity.columns:
            console.print(f"\n[bold]Columns ({len(entity.columns)}):[/bold]")
            columns_table = Table(show_header=True, header_style="bold cyan")
            columns_table.add_column("Name")
            columns_table.add_column("Column")
            columns_table.add_column("Type")
            columns_table.add_column("Flags")
            for field in entity.columns:
                columns_table.add_row(
                    field.name,
                    field.storage_name or "",
                    field.type,
                    ", ".join(sorted(field.flags)),
                )
            console.print(columns_table)

        associations = [f for f in entity.fields if f.is_association]
        if associations:
            console.print(f"\n[bold]Associations ({len(associations)}):[/bold]")
            assoc_table = Table(show_header=True, header_style="bold cyan")
            assoc_table.add_column("Name")
            assoc_table.add_column("Kind")
            assoc_table.add_column("To Entity")
            assoc_table.add_column("Via")
            assoc_table.add_column("Flags")
            for field in associations:
                assoc_table.add_row(
                    field.name,
                    field.association,
                    field.reference or "",
                    field.mapping or "",
                    ", ".join(sorted(field.flags)),
                )
            console.print(assoc_table)

    def print_paths(self, root: str, flag: str, paths: list[AssociationPath]) -> None:
        """Print the association walk of a resolution as a tree."""
        if self.json_mode:
            print(json.dumps([p.model_dump() for p in paths], indent=2))
            return

        tree = Tree(f"[bold]{root}[/bold] ({flag})")
        nodes: dict[str, Tree] = {root: tree}
        for path in paths:
            parent_path = path.path.rsplit(".", 1)[0]
            parent = nodes.get(parent_path, tree)
            nodes[path.path] = parent.add(
                f"{path.field} [dim]{path.association}[/dim] → {path.target}"
            )
        if not paths:
            tree.add("[dim]no flagged associations[/dim]")
        console.print(tree)

    def print_records(self, records: list[AffectedRecord]) -> None:
        """Print resolved records."""
        if self.json_mode:
            print(json.dumps([r.to_dict() for r in records], indent=2))
            return

        if not records:
            console.print("No references found.", style="green")
            return

        total = sum(record.count() for record in records)
        table = Table(
            show_header=True,
            header_style="bold magenta",
            caption=f"{total} affected record(s) for {len(records)} key(s)",
        )
        table.add_column("Primary Key")
        table.add_column("Entity")
        table.add_column("Count", justify="right")
        table.add_column("Ids")
        for record in records:
            for entity_name, entries in record.restrictions.items():
                ids = [
                    entry if isinstance(entry, str) else ", ".join(entry.values())
                    for entry in entries
                ]
                table.add_row(record.pk, entity_name, str(len(entries)), "\n".join(ids))
        console.print(table)

    def print_success(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Print success message."""
        if self.json_mode:
            output = {"success": True, "message": message}
            if details:
                output.update(details)
            print(json.dumps(output, default=str, indent=2))
        else:
            console.print(f"✓ {message}", style="green")
            if details:
                for key, value in details.items():
                    console.print(f"  {key}: {value}", style="dim")

    def print_error(self, error: Exception) -> None:
        """Print error message."""
        if self.json_mode:
            if isinstance(error, FkGraphError):
                print(json.dumps(error.to_dict(), default=str, indent=2))
            else:
                print(json.dumps({"error": str(error)}, indent=2))
        else:
            error_text = str(error)
            if isinstance(error, FkGraphError) and error.context:
                context_str = "\n".join(f"{k}: {v}" for k, v in error.context.items())
                error_text = f"{error_text}\n\n{context_str}"

            panel = Panel(
                error_text,
                title="[red]Error[/red]",
                border_style="red",
            )
            console.print(panel)

    def print_data(self, data: Any) -> None:
        """Print generic data (dict, list, etc.)."""
        if self.json_mode:
            print(json.dumps(data, default=str, indent=2))
        else:
            console.print(data)
