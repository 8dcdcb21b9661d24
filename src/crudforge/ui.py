# src/crudforge/ui.py

from typing import Iterable

from rich.align import Align
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from crudforge.api.routers.crud import CrudResource
from crudforge.core.logging import log
from crudforge.core.models.descriptor import ModelDescriptor

# --- Shared console ---
# Same console as the logger so output interleaves correctly.
console = log.console


def display_descriptor_structure(descriptor: ModelDescriptor) -> None:
    """Prints the fields of a descriptor using a rich Table."""

    structure_table = Table(box=None, padding=(0, 1), show_header=False, show_edge=False)
    structure_table.add_column("Name", style="cyan", no_wrap=True, width=24)
    structure_table.add_column("Type", style="green", width=32)
    structure_table.add_column("Details", style="white")

    for field in descriptor.fields:
        name = f"{field.storage_name}{'*' if not field.nullable else ''}"

        details = []
        if field.is_primary_key:
            details.append("[yellow]PK[/yellow]")
        if field.is_auto_increment:
            details.append("[magenta]AUTO[/magenta]")
        if field.display_name != field.storage_name:
            details.append(f"[dim]as {field.display_name}[/dim]")

        structure_table.add_row(name, Text(field.type_tag), " ".join(details))

    console.print(structure_table)
    console.print()


def display_routes(resources: Iterable[CrudResource]) -> None:
    """Prints every registered binding of every resource."""

    routes_table = Table(box=None, padding=(0, 1), show_edge=False)
    routes_table.add_column("Method", style="bold yellow", width=8)
    routes_table.add_column("Path", style="magenta")
    routes_table.add_column("Operation", style="cyan")

    for resource in resources:
        for entry in resource.entries():
            for method, path in entry.bindings():
                routes_table.add_row(method, Text(resource.prefix + path or "/"), entry.operation_name)

    console.print(routes_table)
    console.print()


def print_welcome(project_name: str, version: str, host: str, port: int) -> None:
    """Prints a welcome message using a rich Panel."""
    docs_url = f"http://{host}:{port}/docs"
    message = Text.from_markup(f"API Documentation available at [link={docs_url}]{docs_url}[/link]")
    panel = Panel(
        Align.center(message, vertical="middle"),
        title=f"[bold green]{project_name} v{version}[/bold green]",
        border_style="blue",
        padding=(1, 2),
    )
    console.print(panel)
