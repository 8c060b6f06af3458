"""CLI entry point for ingredient-rollup."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table as RichTable

from ingredient_rollup import RECORD_FIELDS, __version__
from ingredient_rollup.export import DELIMITERS, format_quantity
from ingredient_rollup.filters import categories
from ingredient_rollup.io import ImportDecodeError, write_json
from ingredient_rollup.models import FilterConfig, ImportReport, RunManifest
from ingredient_rollup.parsing import extract_date
from ingredient_rollup.qc import write_import_report
from ingredient_rollup.report import write_summary_workbook
from ingredient_rollup.session import NoSummaryError, Session, SessionError
from ingredient_rollup.snapshots import DEFAULT_STORE_PATH, JsonSnapshotStore, SnapshotStoreError
from ingredient_rollup.utils import sha256_file, utcnow_iso

app = typer.Typer(
    name="irollup",
    help="ingredient-rollup — Consolidate recipe ingredient spreadsheets into purchase summaries.",
    add_completion=False,
    no_args_is_help=True,
)
snapshot_app = typer.Typer(help="Save, list and delete named dataset snapshots.", no_args_is_help=True)
app.add_typer(snapshot_app, name="snapshot")
console = Console()

STORE_ENVVAR = "IROLLUP_STORE"
PREVIEW_ITEMS = 3


class DelimiterOption(str, Enum):
    comma = "comma"
    semicolon = "semicolon"


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {msg}")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"ingredient-rollup v{__version__}")
        raise typer.Exit()


def _parse_column_map(raw: list[str] | None, *, quiet: bool = False) -> dict[str, str]:
    """Parse ``--map field=Header`` pairs into ``{field: header}``."""
    if not raw:
        return {}
    mapping: dict[str, str] = {}
    for item in raw:
        if "=" not in item:
            raise ValueError(f"Invalid --map value: {item!r}  (expected field=Header)")
        field_name, header = item.split("=", 1)
        field_name = field_name.strip().lower()
        header = header.strip()
        if not field_name or not header:
            raise ValueError("--map entries must have non-empty field and header (field=Header)")
        if field_name not in RECORD_FIELDS:
            raise ValueError(
                f"Unknown field {field_name!r} in --map. Use one of: {', '.join(RECORD_FIELDS)}"
            )
        if field_name in mapping and not quiet:
            console.print(f"[yellow]![/yellow] Overriding mapping for field {field_name!r}")
        mapping[field_name] = header
    return mapping


def _load_profile_map(profile: Path | None) -> list[str]:
    """Return list of ``field=Header`` strings from a profile file."""
    if not profile:
        return []
    if not profile.exists():
        raise ValueError(f"Profile not found: {profile} (expected lines like ingredient=Produto)")
    if profile.is_dir():
        raise ValueError(f"Profile is a directory, not a file: {profile}")
    try:
        text = profile.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"Cannot read profile {profile}: {exc}") from exc

    lines: list[str] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        lines.append(stripped)
    return lines


def _parse_date_option(value: str | None, option: str) -> str | None:
    if value is None or not value.strip():
        return None
    parsed = extract_date(value)
    if parsed is None:
        raise ValueError(f"Invalid {option} date: {value!r} (use YYYY-MM-DD or DD/MM/YYYY)")
    return parsed


def _build_filters(
    category: str,
    search: str,
    start: str | None,
    end: str | None,
    lesson_start: int | None,
    lesson_end: int | None,
) -> FilterConfig:
    return FilterConfig(
        category=category,
        search=search,
        date_start=_parse_date_option(start, "--start"),
        date_end=_parse_date_option(end, "--end"),
        lesson_start=lesson_start,
        lesson_end=lesson_end,
    )


def _write_manifest(
    out_dir: Path,
    run_id: str,
    created_at: str,
    report: ImportReport,
    *,
    input_file: Path | None,
    snapshot: str | None,
    filters: FilterConfig | None = None,
    summary_lines: int = 0,
    status: str = "success",
    error_code: int | None = None,
    error_message: str = "",
) -> Path:
    sha256 = ""
    if input_file is not None:
        try:
            sha256 = sha256_file(input_file)
        except OSError:
            pass

    manifest = RunManifest(
        version=__version__,
        run_id=run_id,
        input_path=str(input_file.resolve()) if input_file is not None else "",
        snapshot=snapshot or "",
        output_dir=str(out_dir.resolve()),
        created_at_utc=created_at,
        rows_in=report.rows_in,
        rows_out=report.rows_out,
        summary_lines=summary_lines,
        sha256=sha256,
        filters=filters.to_dict() if filters is not None else {},
        status=status,
        error_code=error_code,
        error_message=error_message,
    )
    return write_json(out_dir / "run_manifest.json", manifest.to_dict())


def _fail(
    out_dir: Path,
    run_id: str,
    created_at: str,
    message: str,
    *,
    input_file: Path | None,
    snapshot: str | None,
    report: ImportReport | None = None,
    filters: FilterConfig | None = None,
    error_code: int = 2,
) -> typer.Exit:
    if report is None:
        report = ImportReport()
    report.warnings.append(message)
    report_path = write_import_report(out_dir, report)
    manifest_path = _write_manifest(
        out_dir,
        run_id,
        created_at,
        report,
        input_file=input_file,
        snapshot=snapshot,
        filters=filters,
        status="failed",
        error_code=error_code,
        error_message=message,
    )
    _err(message)
    console.print(f"  Import report -> {report_path}")
    console.print(f"  Manifest      -> {manifest_path}")
    return typer.Exit(code=error_code)


def _print_report(report: ImportReport) -> None:
    for w in report.warnings:
        console.print(f"  [yellow]![/yellow] {w}")
    console.print(
        f"  {report.rows_out} rows processed. Dates detected: {report.distinct_dates}"
    )


def _store(path: Path | None) -> JsonSnapshotStore:
    return JsonSnapshotStore(path or DEFAULT_STORE_PATH)


def _import_into(
    session: Session, input_file: Path, col_map: list[str] | None, profile: Path | None, quiet: bool
) -> ImportReport:
    overrides = _parse_column_map(_load_profile_map(profile) + (col_map or []), quiet=quiet)
    try:
        return session.import_file(input_file, overrides=overrides)
    except (FileNotFoundError, ImportDecodeError, OSError) as exc:
        raise ValueError(f"Could not process file {input_file.name}: {exc}") from exc


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
    """ingredient-rollup CLI."""


# ── summary command ──────────────────────────────────────────────


@app.command()
def summary(
    input_file: Path | None = typer.Option(
        None, "--input", "-i",
        help="Path to CSV or XLSX input file.",
        exists=True, readable=True, dir_okay=False,
    ),
    snapshot: str | None = typer.Option(
        None, "--snapshot", "-s",
        help="Use a saved snapshot instead of an input file.",
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for CSV + import report + manifest.",
    ),
    category: str = typer.Option("all", "--category", "-c", help="Category filter ('all' keeps every row)."),
    search: str = typer.Option("", "--search", help="Substring of ingredient or recipe name."),
    start: str | None = typer.Option(None, "--start", help="First date to include (inclusive)."),
    end: str | None = typer.Option(None, "--end", help="Last date to include (inclusive)."),
    lesson_start: int | None = typer.Option(None, "--lesson-start", min=0, help="First lesson index."),
    lesson_end: int | None = typer.Option(None, "--lesson-end", min=0, help="Last lesson index."),
    col_map: list[str] | None = typer.Option(
        None, "--map", "-m",
        help="Column override: field=Header. E.g. --map ingredient=Produto --map quantity=Qtd",
    ),
    profile: Path | None = typer.Option(
        None, "--profile",
        help="Profile file containing column overrides (field=Header lines).",
    ),
    delimiter: DelimiterOption = typer.Option(
        DelimiterOption.comma, "--delimiter", help="CSV delimiter: comma or semicolon.",
    ),
    xlsx: bool = typer.Option(False, "--xlsx", help="Also write Resumo_Consolidado.xlsx."),
    store: Path | None = typer.Option(
        None, "--store", envvar=STORE_ENVVAR, help="Snapshot store file.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes all artifacts.",
    ),
) -> None:
    """Filter the dataset and export the consolidated ingredient summary."""
    echo = _printer(quiet)
    created_at = utcnow_iso()
    run_id = created_at
    out_dir.mkdir(parents=True, exist_ok=True)
    session = Session(store=_store(store))
    filters: FilterConfig | None = None

    if (input_file is None) == (snapshot is None):
        raise _fail(
            out_dir, run_id, created_at,
            "Provide exactly one of --input or --snapshot.",
            input_file=input_file, snapshot=snapshot,
        )

    try:
        filters = _build_filters(category, search, start, end, lesson_start, lesson_end)
        if not quiet:
            source = str(input_file) if input_file is not None else f"snapshot {snapshot!r}"
            console.print(Panel(
                f"[bold]ingredient-rollup[/bold] v{__version__}\n"
                f"Source: {source}\nOutput: {out_dir}",
                title="Summary Start", border_style="blue",
            ))

        # ── Load ─────────────────────────────────────────────────
        echo("[blue]>[/blue] Loading dataset …")
        if input_file is not None:
            report = _import_into(session, input_file, col_map, profile, quiet)
        else:
            report = session.load_snapshot(str(snapshot))
    except (ValueError, SessionError) as exc:
        raise _fail(
            out_dir, run_id, created_at, str(exc),
            input_file=input_file, snapshot=snapshot, filters=filters,
        )

    write_import_report(out_dir, report)
    if not quiet:
        _print_report(report)

    try:
        # ── Consolidate ──────────────────────────────────────────
        echo("[blue]>[/blue] Consolidating …")
        filtered = session.apply_filters(filters)
        lines = session.generate_summary()
        echo(f"  {len(filtered)} rows after filters -> {len(lines)} summary lines")

        try:
            csv_path = session.write_summary(out_dir, DELIMITERS[delimiter.value])
        except NoSummaryError as exc:
            raise _fail(
                out_dir, run_id, created_at, str(exc),
                input_file=input_file, snapshot=snapshot, report=report, filters=filters,
            )
        echo(f"  CSV      -> {csv_path}")

        if xlsx:
            xlsx_path = write_summary_workbook(out_dir, lines, filtered, report)
            echo(f"  Workbook -> {xlsx_path}")

        manifest_path = _write_manifest(
            out_dir, run_id, created_at, report,
            input_file=input_file, snapshot=snapshot, filters=filters,
            summary_lines=len(lines),
        )
        echo(f"  Manifest -> {manifest_path}")

        if not quiet:
            tbl = RichTable(title="Resumo Consolidado", show_lines=False)
            tbl.add_column("Quantidade", justify="right")
            tbl.add_column("Unidade")
            tbl.add_column("Código")
            tbl.add_column("Especificação")
            for line in lines:
                tbl.add_row(
                    format_quantity(line.quantity), line.unit, line.resolved_code, line.specification
                )
            console.print(tbl)
            console.print(Panel(
                f"[green]Done[/green] — {len(lines)} lines -> {csv_path}",
                title="Summary Complete", border_style="green",
            ))
    except typer.Exit:
        raise
    except Exception as exc:
        raise _fail(
            out_dir, run_id, created_at, f"Unexpected internal error: {exc}",
            input_file=input_file, snapshot=snapshot, report=report, filters=filters,
            error_code=1,
        )


# ── inspect command ──────────────────────────────────────────────


@app.command()
def inspect(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Path to CSV or XLSX input file.",
        exists=True, readable=True, dir_okay=False,
    ),
    category: str = typer.Option("all", "--category", "-c", help="Category filter."),
    search: str = typer.Option("", "--search", help="Substring of ingredient or recipe name."),
    start: str | None = typer.Option(None, "--start", help="First date to include."),
    end: str | None = typer.Option(None, "--end", help="Last date to include."),
    col_map: list[str] | None = typer.Option(None, "--map", "-m", help="Column override: field=Header."),
    profile: Path | None = typer.Option(None, "--profile", help="Profile file with column overrides."),
) -> None:
    """Show the imported records grouped by date and recipe."""
    session = Session()
    try:
        filters = _build_filters(category, search, start, end, None, None)
        report = _import_into(session, input_file, col_map, profile, quiet=False)
    except ValueError as exc:
        _err(str(exc))
        raise typer.Exit(code=2)

    _print_report(report)
    cats = categories(session.records)
    if cats:
        console.print(f"  Categories: {', '.join(cats)}")
    grouped = session.grouped(filters)
    if not grouped:
        console.print("[yellow]![/yellow] No records match the filters.")
        return

    for day, recipes in grouped.items():
        tbl = RichTable(title=f"Data {day} — {len(recipes)} receitas", show_lines=True)
        tbl.add_column("Receita", style="bold")
        tbl.add_column("Insumos")
        for recipe_name, items in recipes.items():
            preview = " • ".join(
                f"{i.ingredient} ({format_quantity(i.quantity)}{i.unit})"
                for i in items[:PREVIEW_ITEMS]
            )
            if len(items) > PREVIEW_ITEMS:
                preview += f" … +{len(items) - PREVIEW_ITEMS}"
            tbl.add_row(recipe_name, preview)
        console.print(tbl)


# ── snapshot commands ────────────────────────────────────────────


@snapshot_app.command("save")
def snapshot_save(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Path to CSV or XLSX input file.",
        exists=True, readable=True, dir_okay=False,
    ),
    name: str = typer.Option(..., "--name", "-n", help="Snapshot name."),
    col_map: list[str] | None = typer.Option(None, "--map", "-m", help="Column override: field=Header."),
    profile: Path | None = typer.Option(None, "--profile", help="Profile file with column overrides."),
    store: Path | None = typer.Option(None, "--store", envvar=STORE_ENVVAR, help="Snapshot store file."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress informational output."),
) -> None:
    """Import a file and save its records under NAME."""
    session = Session(store=_store(store))
    try:
        report = _import_into(session, input_file, col_map, profile, quiet)
        count = session.save_snapshot(name)
    except (ValueError, SessionError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)
    if not quiet:
        _print_report(report)
        console.print(f"[green]Saved[/green] snapshot {name.strip()!r} ({count} records)")


@snapshot_app.command("list")
def snapshot_list(
    store: Path | None = typer.Option(None, "--store", envvar=STORE_ENVVAR, help="Snapshot store file."),
) -> None:
    """List saved snapshot names."""
    try:
        names = Session(store=_store(store)).list_snapshots()
    except SnapshotStoreError as exc:
        _err(str(exc))
        raise typer.Exit(code=2)
    if not names:
        console.print("No snapshots saved.")
        return
    for snapshot_name in names:
        console.print(snapshot_name)


@snapshot_app.command("delete")
def snapshot_delete(
    name: str = typer.Option(..., "--name", "-n", help="Snapshot name."),
    store: Path | None = typer.Option(None, "--store", envvar=STORE_ENVVAR, help="Snapshot store file."),
) -> None:
    """Delete the snapshot saved under NAME."""
    try:
        removed = Session(store=_store(store)).delete_snapshot(name)
    except ValueError as exc:
        _err(str(exc))
        raise typer.Exit(code=2)
    if not removed:
        _err(f"Snapshot not found: {name.strip()!r}")
        raise typer.Exit(code=2)
    console.print(f"[green]Deleted[/green] snapshot {name.strip()!r}")
