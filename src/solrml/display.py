"""Rich terminal formatting for CLI output."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table
from rich.text import Text

from solrml.language import ResolvedName

console = Console()
err_console = Console(stderr=True)


def display_value(value: str) -> None:
    """Print a query string or field name verbatim (no markup, no wrapping)."""
    console.print(Text(value), soft_wrap=True, highlight=False)


def display_error(message: str) -> None:
    err_console.print(Text.assemble(("error: ", "bold red"), message), soft_wrap=True)


def display_projections(base: str, projections: dict[str, str]) -> None:
    """Display the language-specific names of *base* as a table."""
    table = Table(title=f"Projections of {base}", show_header=True, header_style="bold")
    table.add_column("Language", style="cyan")
    table.add_column("Field name", no_wrap=True)
    for lang, name in projections.items():
        table.add_row(lang, Text(name))
    console.print(table)


def display_resolved(name: str, resolved: ResolvedName | None) -> None:
    """Display how a field name resolves."""
    if resolved is None:
        console.print(Text.assemble(Text(name), ("  canonical (no language segment)", "dim")))
        return
    table = Table(show_header=False, box=None)
    table.add_column("Key", style="bold")
    table.add_column("Value", no_wrap=True)
    table.add_row("Field", Text(name))
    table.add_row("Canonical", Text(resolved.field_name))
    table.add_row("Language", Text(resolved.language_id))
    console.print(table)
