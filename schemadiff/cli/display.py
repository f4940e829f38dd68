"""Rich output formatting for the schemadiff CLI.

All functions write to a :class:`rich.console.Console` instance (typically
bound to *stderr*) so that machine-readable output on *stdout* is never
polluted with human-readable decoration.
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from schemadiff.models.diff import ChangeSet, DiffRecord, ElementChangeType, Operation, change_type_facets

# ---------------------------------------------------------------------------
# Operation colour mapping
# ---------------------------------------------------------------------------

_OPERATION_COLOURS: dict[Operation, str] = {
    Operation.DELETE: "red",
    Operation.INSERT: "green",
    Operation.CHANGE: "yellow",
}


def _coloured_operation(operation: Operation) -> str:
    colour = _OPERATION_COLOURS[operation]
    return f"[{colour}]{operation.value}[/{colour}]"


def _member_label(record: DiffRecord) -> str:
    if record.sub_element is not None:
        return escape(record.sub_element.qualified_name)
    if record.tag is not None:
        return f"tag {escape(record.tag)}"
    return "-"


# ---------------------------------------------------------------------------
# Change-set summary
# ---------------------------------------------------------------------------


def display_change_set(console: Console, change_set: ChangeSet) -> None:
    """Render a change-set overview followed by one row per record.

    Parameters
    ----------
    console:
        Rich console to write to (typically stderr).
    change_set:
        The diff result to display.
    """
    counts = change_set.count_by_operation()
    header_lines = [
        f"[bold]Records:[/bold]  {len(change_set.records)}",
        f"[bold]Deleted:[/bold]  {counts[Operation.DELETE.value]}",
        f"[bold]Inserted:[/bold] {counts[Operation.INSERT.value]}",
        f"[bold]Changed:[/bold]  {counts[Operation.CHANGE.value]}",
    ]
    console.print(Panel("\n".join(header_lines), title="Schema Diff", border_style="blue"))

    for name in change_set.skipped_schemas:
        console.print(f"[yellow]Skipped schema without reference counterpart: {escape(name)}[/yellow]")
    for name in change_set.abandoned_schemas:
        console.print(f"[yellow]Abandoned schema: {escape(name)}[/yellow]")

    if change_set.is_empty:
        console.print("[green]No differences found.[/green]")
        return

    table = Table(title="Differences", show_lines=False, pad_edge=True, expand=False)
    table.add_column("#", style="dim", width=4, justify="right")
    table.add_column("Change")
    table.add_column("Type", style="bold")
    table.add_column("Element")
    table.add_column("Member")
    table.add_column("Diff")

    for idx, record in enumerate(change_set.records, start=1):
        table.add_row(
            str(idx),
            _coloured_operation(record.change),
            record.element_change_type.value,
            escape(record.owner.qualified_name),
            _member_label(record),
            escape(record.render_inline()),
        )

    console.print(table)


# ---------------------------------------------------------------------------
# Taxonomy
# ---------------------------------------------------------------------------


def display_change_types(console: Console) -> None:
    """Render the change type taxonomy in sort order with its facets."""
    table = Table(title="Change Types", show_lines=False, pad_edge=True, expand=False)
    table.add_column("#", style="dim", width=4, justify="right")
    table.add_column("Type", style="bold")
    table.add_column("Multi-valued", justify="center")
    table.add_column("Ignore case", justify="center")

    for idx, change_type in enumerate(ElementChangeType, start=1):
        facets = change_type_facets(change_type)
        table.add_row(
            str(idx),
            change_type.value,
            "yes" if facets.multi_valued else "-",
            "yes" if facets.ignore_case else "-",
        )

    console.print(table)
