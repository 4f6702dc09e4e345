"""CLI entry point for revenue-desk."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any

import pandas as pd
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table as RichTable

from revenue_desk import __version__
from revenue_desk.analytics import (
    compute_daily,
    compute_distributors,
    compute_monthly,
    compute_quarterly,
    compute_summary,
    filter_transactions,
    load_transactions,
    run_query,
)
from revenue_desk.exceptions import RevenueDeskError
from revenue_desk.ingest import Ingestor, list_uploads
from revenue_desk.logging_config import configure_logging
from revenue_desk.models import ParseResult
from revenue_desk.pipeline import parse_excel
from revenue_desk.qc import write_parse_report
from revenue_desk.report import write_report
from revenue_desk.settings import (
    Settings,
    default_store_dir,
    load_alias_profile,
    parse_alias_items,
)
from revenue_desk.store import JsonStore
from revenue_desk.utils import sha256_file

app = typer.Typer(
    name="revdesk",
    help="revenue-desk — Turn distributor sales spreadsheets into revenue analytics.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()


class AnalyticsType(str, Enum):
    summary = "summary"
    monthly = "monthly"
    quarterly = "quarterly"
    distributors = "distributors"
    daily = "daily"


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {msg}")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"revenue-desk v{__version__}")
        raise typer.Exit()


def _build_settings(alias: list[str] | None, profile: Path | None) -> Settings:
    """Settings from the environment plus any extra header aliases.

    Exits with code 2 on a bad alias, profile or environment value.
    """
    try:
        extra = parse_alias_items(load_alias_profile(profile) + (alias or []))
        return Settings.from_env().with_extra_aliases(extra)
    except ValueError as exc:
        _err(str(exc))
        raise typer.Exit(code=2)


def _open_store(store_dir: Path | None) -> JsonStore:
    try:
        return JsonStore(store_dir or default_store_dir())
    except RevenueDeskError as exc:
        _err(str(exc))
        raise typer.Exit(code=2)


def _as_date(value: datetime | None) -> date | None:
    return value.date() if value is not None else None


def _sheet_table(result: ParseResult) -> RichTable:
    tbl = RichTable(title="Parse Summary", show_lines=True)
    tbl.add_column("Sheet", style="bold")
    tbl.add_column("Header row", justify="right")
    tbl.add_column("Columns")
    tbl.add_column("Rows", justify="right")
    tbl.add_column("Valid", justify="right")
    tbl.add_column("Invalid", justify="right")
    for sheet in result.sheets:
        found = ", ".join(
            f"{role}={sheet.headers[idx]!r}"
            for role, idx in sheet.columns.to_dict().items()
            if idx != -1
        )
        tbl.add_row(
            sheet.sheet_name,
            str(sheet.header_row + 1),
            found or "[yellow]none[/yellow]",
            str(len(sheet.rows)),
            f"[green]{sheet.valid_rows}[/green]",
            f"[red]{sheet.invalid_rows}[/red]" if sheet.invalid_rows else "0",
        )
    return tbl


def _frame_table(title: str, df: pd.DataFrame) -> RichTable:
    tbl = RichTable(title=title)
    for col in df.columns:
        tbl.add_column(str(col), justify="right" if col != "distributor" else "left")
    for values in df.itertuples(index=False, name=None):
        tbl.add_row(*[_fmt(v) for v in values])
    return tbl


def _fmt(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:,.2f}"
    return str(value)


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log parser details."),
    log_quiet: bool = typer.Option(False, "--log-quiet", help="Only log warnings and errors."),
) -> None:
    """revenue-desk CLI."""
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif log_quiet:
        level = logging.WARNING
    configure_logging(level=level)


# ── validate command ─────────────────────────────────────────────


@app.command()
def validate(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Path to an .xls or .xlsx workbook.",
        exists=True, readable=True,
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for parse_report.json.",
    ),
    alias: list[str] | None = typer.Option(
        None, "--alias", "-a",
        help="Extra header alias: role=Header. E.g. --alias amount='Net Sales'",
    ),
    profile: Path | None = typer.Option(
        None, "--profile",
        help="Profile file containing header aliases (role=Header lines).",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes the parse report.",
    ),
) -> None:
    """Parse a workbook without storing anything.

    Exit 0 = parsed (rows may still be invalid), exit 2 = unreadable file.
    """
    echo = _printer(quiet)
    settings = _build_settings(alias, profile)

    if not quiet:
        console.print(Panel(
            f"[bold]revenue-desk[/bold] v{__version__}  [dim]validate mode[/dim]\n"
            f"Input: {input_file}",
            title="Validate", border_style="cyan",
        ))

    try:
        result = parse_excel(input_file, settings=settings)
    except (RevenueDeskError, FileNotFoundError, OSError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)

    report_path = write_parse_report(
        out_dir,
        result,
        source=input_file.name,
        sha256=sha256_file(input_file),
        error_limit=settings.stored_error_limit,
    )

    echo(_sheet_table(result))
    for message in result.row_errors()[: settings.response_error_limit]:
        echo(f"  [yellow]![/yellow] {message}")
    echo(
        f"  {result.total_rows} rows: {result.valid_rows} valid, "
        f"{result.invalid_rows} invalid"
    )
    console.print(f"  Parse report -> {report_path}")


# ── ingest command ───────────────────────────────────────────────


@app.command()
def ingest(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Path to an .xls or .xlsx workbook.",
        exists=True, readable=True,
    ),
    store_dir: Path | None = typer.Option(
        None, "--store", "-s",
        help="Store directory (default: $REVDESK_STORE or ./revdesk_store).",
    ),
    user: str = typer.Option("system", "--user", "-u", help="Recorded as uploaded_by."),
    alias: list[str] | None = typer.Option(
        None, "--alias", "-a",
        help="Extra header alias: role=Header.",
    ),
    profile: Path | None = typer.Option(
        None, "--profile",
        help="Profile file containing header aliases (role=Header lines).",
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress informational output."),
) -> None:
    """Parse a workbook and store raw rows, transactions and the upload record."""
    echo = _printer(quiet)
    settings = _build_settings(alias, profile)
    store = _open_store(store_dir)
    ingestor = Ingestor(store, settings)

    try:
        outcome = ingestor.ingest(input_file.read_bytes(), input_file.name, uploaded_by=user)
    except RevenueDeskError as exc:
        _err(str(exc))
        raise typer.Exit(code=2)
    except OSError as exc:
        _err(f"Cannot read {input_file}: {exc}")
        raise typer.Exit(code=2)
    except Exception as exc:
        _err(f"Unexpected internal error: {exc}")
        raise typer.Exit(code=1)

    for message in outcome.errors:
        echo(f"  [yellow]![/yellow] {message}")
    if not quiet:
        colour = "green" if outcome.status == "completed" else "yellow"
        console.print(Panel(
            f"[{colour}]{outcome.status}[/{colour}] — {outcome.filename}\n"
            f"Sheets: {outcome.sheets_processed}  Rows: {outcome.rows_processed}  "
            f"Valid: {outcome.valid_rows}  Invalid: {outcome.invalid_rows}\n"
            f"Normalized: {outcome.rows_normalized}  Upload id: {outcome.upload_id}",
            title="Ingest Complete", border_style=colour,
        ))


# ── uploads command ──────────────────────────────────────────────


@app.command()
def uploads(
    store_dir: Path | None = typer.Option(None, "--store", "-s", help="Store directory."),
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Number of uploads to list."),
) -> None:
    """List the most recent uploads."""
    store = _open_store(store_dir)
    records = list_uploads(store, limit=limit)
    tbl = RichTable(title="Uploads")
    for col in ("Uploaded at", "File", "Status", "Sheets", "Rows", "Normalized", "Errors"):
        tbl.add_column(col)
    for record in records:
        tbl.add_row(
            record.uploaded_at,
            record.original_name,
            record.status,
            str(record.sheets_processed),
            str(record.rows_extracted),
            str(record.rows_normalized),
            str(len(record.processing_errors)),
        )
    console.print(tbl)


# ── analytics command ────────────────────────────────────────────


@app.command()
def analytics(
    kind: AnalyticsType = typer.Option(
        AnalyticsType.summary, "--type", "-t", help="Aggregation to show."
    ),
    start: datetime | None = typer.Option(
        None, "--start", formats=["%Y-%m-%d"], help="Only transactions on/after this date."
    ),
    end: datetime | None = typer.Option(
        None, "--end", formats=["%Y-%m-%d"], help="Only transactions on/before this date."
    ),
    distributor: str | None = typer.Option(
        None, "--distributor", "-d", help="Only this distributor ('all' for every one)."
    ),
    store_dir: Path | None = typer.Option(None, "--store", "-s", help="Store directory."),
) -> None:
    """Show revenue aggregations over valid transactions."""
    store = _open_store(store_dir)
    df = load_transactions(store)
    result = run_query(
        df,
        kind.value,
        start=_as_date(start),
        end=_as_date(end),
        distributor=distributor,
    )
    if isinstance(result, dict):
        tbl = RichTable(title="Summary", show_lines=True)
        tbl.add_column("Metric", style="bold")
        tbl.add_column("Value", justify="right")
        for key, value in result.items():
            tbl.add_row(key.replace("_", " ").title(), _fmt(value))
        console.print(tbl)
        return
    if result.empty:
        console.print("[yellow]![/yellow] No valid transactions match the filters.")
        return
    console.print(_frame_table(kind.value.title(), result))


# ── report command ───────────────────────────────────────────────


@app.command()
def report(
    store_dir: Path | None = typer.Option(None, "--store", "-s", help="Store directory."),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o", help="Output directory for Revenue_Report.xlsx."
    ),
) -> None:
    """Write an Excel revenue report from the stored transactions."""
    settings = _build_settings(None, None)
    store = _open_store(store_dir)
    df = load_transactions(store)
    valid = filter_transactions(df)
    report_path = write_report(
        out_dir,
        df,
        compute_summary(valid, date.today()),
        compute_monthly(valid),
        compute_quarterly(valid),
        compute_distributors(valid),
        compute_daily(valid),
        uploads=list_uploads(store, limit=settings.uploads_list_limit),
    )
    console.print(f"  Report -> {report_path}")
