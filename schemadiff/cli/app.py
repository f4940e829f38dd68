"""schemadiff CLI application -- Typer-based interface to the diff engine.

Human-readable output goes to *stderr* via Rich; the machine-readable
change-set (JSON) goes to *stdout* or to a file so that pipelines can
compose cleanly.

Exit codes: ``0`` success, ``2`` invalid configuration or unreadable input.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from schemadiff.cli.display import display_change_set, display_change_types

# ---------------------------------------------------------------------------
# App & global state
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="schemadiff",
    help="schemadiff - compare two versions of an application schema model",
    no_args_is_help=True,
)
console = Console(stderr=True)

# Mutable global options populated by the Typer callback.
_json_output: bool = False


# ---------------------------------------------------------------------------
# Callback -- global options
# ---------------------------------------------------------------------------


@app.callback()
def _global_options(
    json_mode: bool = typer.Option(
        False,
        "--json/--no-json",
        help="Emit structured JSON to stdout instead of human-readable output.",
    ),
) -> None:
    """Global options applied to every command."""
    global _json_output  # noqa: PLW0603
    _json_output = json_mode


# ---------------------------------------------------------------------------
# diff
# ---------------------------------------------------------------------------


@app.command()
def diff(
    reference: Path = typer.Argument(
        ...,
        help="Snapshot (YAML/JSON) of the reference model.",
        exists=True,
        dir_okay=False,
        resolve_path=True,
    ),
    input_model: Path = typer.Argument(
        ...,
        metavar="INPUT",
        help="Snapshot (YAML/JSON) of the input model.",
        exists=True,
        dir_okay=False,
        resolve_path=True,
    ),
    rules: Path | None = typer.Option(
        None,
        "--rules",
        help="YAML/JSON file with rename and relocation rules.",
        exists=True,
        dir_okay=False,
    ),
    change_types: str | None = typer.Option(
        None,
        "--types",
        help="Comma-separated change types to report (default: all).",
    ),
    tag_pattern: str | None = typer.Option(
        None,
        "--tag-pattern",
        help="Regular expression selecting the tagged values to compare.",
    ),
    tags_to_split: str | None = typer.Option(
        None,
        "--tags-to-split",
        help="Regular expression for tags whose values are comma-separated lists.",
    ),
    schema: list[str] | None = typer.Option(
        None,
        "--schema",
        help="Input schema to diff; repeat for several (default: all).",
    ),
    workers: int | None = typer.Option(
        None,
        "--workers",
        help="Number of schema pairs diffed in parallel.",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the change-set JSON to this file.",
    ),
) -> None:
    """Diff every input schema against its reference counterpart."""
    from schemadiff.config import load_settings
    from schemadiff.diff import diff_models
    from schemadiff.loader import SnapshotLoadError, load_rules, load_snapshot
    from schemadiff.logging_config import configure_logging
    from schemadiff.models import ConfigurationError, DiffOptions
    from schemadiff.report import serialize_change_set

    overrides: dict[str, object] = {}
    if change_types is not None:
        overrides["diff_element_types"] = change_types
    if tag_pattern is not None:
        overrides["tag_pattern"] = tag_pattern
    if tags_to_split is not None:
        overrides["tags_to_split"] = tags_to_split
    if workers is not None:
        overrides["max_workers"] = workers

    try:
        settings = load_settings(**overrides)
    except ValidationError as exc:
        console.print(f"[red]Invalid configuration: {escape(str(exc))}[/red]")
        raise typer.Exit(code=2) from exc

    configure_logging(settings.log_level.value, structured=settings.structured_logging)

    try:
        reference_schemas = load_snapshot(reference)
        input_schemas = load_snapshot(input_model)
        map_rules = load_rules(rules) if rules is not None else []
        options = DiffOptions.from_settings(settings, map_rules)
        change_set = diff_models(
            reference_schemas,
            input_schemas,
            options,
            schema_names=schema or None,
            max_workers=settings.max_workers,
        )
    except SnapshotLoadError as exc:
        console.print(f"[red]Failed to load input: {escape(str(exc))}[/red]")
        raise typer.Exit(code=2) from exc
    except ConfigurationError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=2) from exc

    serialized = serialize_change_set(change_set)
    if output is not None:
        output.write_text(serialized + "\n", encoding="utf-8")
        console.print(f"[green]Change-set written to {output}[/green]")

    if _json_output:
        sys.stdout.write(serialized + "\n")
    else:
        display_change_set(console, change_set)


# ---------------------------------------------------------------------------
# types
# ---------------------------------------------------------------------------


@app.command()
def types() -> None:
    """List the change types in report order with their comparison facets."""
    from schemadiff.models import ElementChangeType, change_type_facets

    if _json_output:
        rows = [
            {
                "type": t.value,
                "multi_valued": change_type_facets(t).multi_valued,
                "ignore_case": change_type_facets(t).ignore_case,
            }
            for t in ElementChangeType
        ]
        sys.stdout.write(json.dumps(rows, indent=2) + "\n")
    else:
        display_change_types(console)
