"""CLI entry point for sheetbind."""

from __future__ import annotations

from collections.abc import Callable
from itertools import islice
from pathlib import Path

import pandas as pd
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table as RichTable

from sheetbind import __version__
from sheetbind.config import SheetConfig, load_alias_profile, parse_alias_pairs
from sheetbind.errors import SheetBindError
from sheetbind.frame import rows_to_frame
from sheetbind.io import write_json
from sheetbind.reader import SheetReader

app = typer.Typer(
    name="sbind",
    help="sheetbind: bind spreadsheet rows to typed records and back.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {msg}")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"sheetbind v{__version__}")
        raise typer.Exit()


def _build_config(
    *,
    sheet: str | None,
    threshold: int,
    aliases: list[str] | None,
    profile: Path | None,
) -> SheetConfig:
    merged = load_alias_profile(profile)
    merged.update(parse_alias_pairs(aliases))
    return SheetConfig(
        sheet_name=sheet,
        matching_percentage=threshold,
        human_readable_headers=merged,
    )


def _write_text_artifact(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(text, encoding="utf-8")
    tmp_path.replace(path)
    return path


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """sheetbind CLI."""


# ── headers command ──────────────────────────────────────────────


@app.command()
def headers(
    input_file: Path = typer.Argument(
        ..., help="Path to an XLSX (or XLS) workbook.", exists=True, readable=True,
    ),
    field_names: list[str] = typer.Option(
        ..., "--field", "-f",
        help="Target field name, in declaration order. Repeat for each field.",
    ),
    aliases: list[str] | None = typer.Option(
        None, "--alias", "-a",
        help="Header label for a field: field=Label. E.g. --alias email=E-Mail",
    ),
    profile: Path | None = typer.Option(
        None, "--profile",
        help="Profile file containing aliases (field=Label lines).",
    ),
    sheet: str | None = typer.Option(None, "--sheet", "-s", help="Sheet name (default: active)."),
    threshold: int = typer.Option(
        80, "--threshold", "-t", min=0, max=100,
        help="Minimum similarity (0-100) for a header to match a field.",
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only report unmatched fields."),
) -> None:
    """Show which header column each field maps to.

    Exit 0 = every field matched, exit 1 = some fields unmatched, exit 2 = error.
    """
    echo = _printer(quiet)
    try:
        config = _build_config(sheet=sheet, threshold=threshold, aliases=aliases, profile=profile)
        with SheetReader(input_file, config) as reader:
            columns = reader.column_map(field_names)
    except (SheetBindError, FileNotFoundError, OSError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)

    if not quiet:
        tbl = RichTable(title=f"Column map: {input_file.name}", show_lines=True)
        tbl.add_column("Column", justify="right")
        tbl.add_column("Maps to", style="bold")
        tbl.add_column("Kind")
        for idx, name in columns.items():
            kind = "[green]field[/green]" if name in field_names else "[dim]passthrough[/dim]"
            tbl.add_row(str(idx), name, kind)
        console.print(tbl)

    unmatched = [name for name in field_names if name not in columns.values()]
    if unmatched:
        console.print(f"[yellow]![/yellow] Unmatched fields: {', '.join(unmatched)}")
        raise typer.Exit(code=1)
    echo("[green]All fields matched[/green]")


# ── dump command ─────────────────────────────────────────────────


@app.command()
def dump(
    input_file: Path = typer.Argument(
        ..., help="Path to an XLSX (or XLS) workbook.", exists=True, readable=True,
    ),
    out: Path | None = typer.Option(
        None, "--out", "-o",
        help="Write rows to .json or .csv instead of printing a preview.",
    ),
    sheet: str | None = typer.Option(None, "--sheet", "-s", help="Sheet name (default: active)."),
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Rows shown in the preview."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress informational output."),
) -> None:
    """Dump the sheet as header → text rows (no typing applied)."""
    echo = _printer(quiet)
    try:
        with SheetReader(input_file, SheetConfig(sheet_name=sheet)) as reader:
            rows = reader.read_rows()
            if out is None:
                rows = islice(rows, limit)
            frame = rows_to_frame(rows)
    except (SheetBindError, FileNotFoundError, OSError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)

    if out is None:
        tbl = RichTable(title=f"{input_file.name} (first {limit} rows)")
        for col in frame.columns:
            tbl.add_column(str(col))
        for values in frame.itertuples(index=False, name=None):
            tbl.add_row(*("" if pd.isna(v) else str(v) for v in values))
        console.print(tbl)
        return

    suffix = out.suffix.lower()
    if suffix == ".json":
        records = [
            {k: (None if pd.isna(v) else v) for k, v in row.items()}
            for row in frame.to_dict(orient="records")
        ]
        path = write_json(out, records)
    elif suffix == ".csv":
        path = _write_text_artifact(out, frame.to_csv(index=False))
    else:
        _err(f"Unsupported output type: {suffix!r}. Use .json or .csv")
        raise typer.Exit(code=2)

    echo(Panel(
        f"[bold]sheetbind[/bold] v{__version__}\n"
        f"Rows:   {len(frame)}\nOutput: {path}",
        title="Dump", border_style="green",
    ))
