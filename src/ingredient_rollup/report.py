"""Excel summary writer — produces Resumo_Consolidado.xlsx."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo
from openpyxl.worksheet.worksheet import Worksheet

from ingredient_rollup.export import CSV_HEADER
from ingredient_rollup.models import ConsolidatedLine, ImportReport, IngredientUsageRecord

# ── Style constants ──────────────────────────────────────────────

HEADER_FONT = Font(name="Calibri", bold=True, size=11, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="2F5496", end_color="2F5496", fill_type="solid")
HEADER_ALIGN = Alignment(horizontal="center", vertical="center", wrap_text=True)

TITLE_FONT = Font(name="Calibri", bold=True, size=14, color="2F5496")
SUBTITLE_FONT = Font(name="Calibri", bold=False, size=10, color="808080")
LABEL_FONT = Font(name="Calibri", bold=True, size=11)
VALUE_FONT = Font(name="Calibri", size=11)
WARN_FONT = Font(name="Calibri", italic=True, size=10, color="CC6600")

NOTE_FILL = PatternFill(start_color="FFF2CC", end_color="FFF2CC", fill_type="solid")

QTY_FMT = '#,##0.###'

REPORT_FILENAME = "Resumo_Consolidado.xlsx"
RECORD_HEADER = ["Data", "Receita", "Aula", "Insumo", "Quantidade", "Unidade", "Tipo", "Código"]

# Column-name → format mapping for data sheets
_COL_FORMATS: dict[str, str] = {
    "quantidade": QTY_FMT,
}

_AUTO_WIDTH_SAMPLE_ROWS = 300
_EXCEL_FORMULA_PREFIXES = ("=", "+", "-", "@")


# ── Helpers ──────────────────────────────────────────────────────


def _style_header(ws: Worksheet, ncols: int) -> None:
    for c in range(1, ncols + 1):
        cell = ws.cell(row=1, column=c)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGN


def _auto_width(ws: Worksheet) -> None:
    max_row = min(ws.max_row, _AUTO_WIDTH_SAMPLE_ROWS + 1)  # include header row
    for c_idx in range(1, ws.max_column + 1):
        letter = get_column_letter(c_idx)
        width = 0
        for row in ws.iter_rows(min_row=1, max_row=max_row, min_col=c_idx, max_col=c_idx):
            width = max(width, len(str(row[0].value or "")))
        ws.column_dimensions[letter].width = min(width + 4, 40)


def _apply_number_formats(ws: Worksheet, col_names: list[str]) -> None:
    if ws.max_row < 2:
        return
    for c_idx, name in enumerate(col_names, 1):
        fmt = _COL_FORMATS.get(name.lower())
        if fmt:
            for row in ws.iter_rows(min_row=2, max_row=ws.max_row, min_col=c_idx, max_col=c_idx):
                for cell in row:
                    cell.number_format = fmt


def _add_excel_table(ws: Worksheet, name: str, ncols: int, nrows: int) -> None:
    if nrows < 1 or ncols < 1:
        return
    ref = f"A1:{get_column_letter(ncols)}{nrows + 1}"  # +1 for header
    table = Table(displayName=name, ref=ref)
    table.tableStyleInfo = TableStyleInfo(
        name="TableStyleMedium9", showFirstColumn=False,
        showLastColumn=False, showRowStripes=True, showColumnStripes=False,
    )
    ws.add_table(table)


def _excel_value(val: Any) -> Any:
    if isinstance(val, str):
        if val.startswith("'"):
            return val
        stripped = val.lstrip()
        if stripped and stripped[0] in _EXCEL_FORMULA_PREFIXES:
            return f"'{val}"
    return val


def _rows_to_sheet(
    wb: Workbook, name: str, header: list[str], rows: Sequence[Sequence[Any]]
) -> Worksheet:
    ws = wb.create_sheet(title=name)
    for c_idx, col_name in enumerate(header, 1):
        ws.cell(row=1, column=c_idx, value=col_name)
    for r_idx, values in enumerate(rows, 2):
        for c_idx, val in enumerate(values, 1):
            ws.cell(row=r_idx, column=c_idx, value=_excel_value(val))
    _style_header(ws, len(header))
    _apply_number_formats(ws, header)
    ws.freeze_panes = "A2"
    _auto_width(ws)
    _add_excel_table(ws, name, len(header), len(rows))
    return ws


def _write_notes(wb: Workbook, report: ImportReport, line_count: int) -> None:
    ws = wb.create_sheet(title="Notas")

    ws.cell(row=1, column=1, value="Resumo Consolidado").font = TITLE_FONT
    ws.merge_cells("A1:D1")
    generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    ws.cell(row=2, column=1, value=f"Gerado em {generated}").font = SUBTITLE_FONT
    ws.merge_cells("A2:D2")

    row = 4
    counts = [
        ("Linhas lidas", report.rows_in),
        ("Linhas válidas", report.rows_out),
        ("Linhas descartadas", report.dropped_rows),
        ("Datas detectadas", report.distinct_dates),
        ("Itens no resumo", line_count),
    ]
    for label, value in counts:
        ws.cell(row=row, column=1, value=label).font = LABEL_FONT
        ws.cell(row=row, column=2, value=value).font = VALUE_FONT
        for c in range(1, 3):
            ws.cell(row=row, column=c).fill = NOTE_FILL
        row += 1

    row += 1
    if report.warnings:
        for warn in report.warnings:
            ws.cell(row=row, column=1, value=f"⚠ {warn}").font = WARN_FONT
            row += 1
    else:
        ws.cell(row=row, column=1, value="Sem avisos").font = VALUE_FONT

    ws.column_dimensions["A"].width = 26
    ws.column_dimensions["B"].width = 14


# ── Public API ───────────────────────────────────────────────────


def write_summary_workbook(
    out_dir: Path,
    lines: Sequence[ConsolidatedLine],
    records: Sequence[IngredientUsageRecord] = (),
    report: ImportReport | None = None,
) -> Path:
    """Write ``Resumo_Consolidado.xlsx`` and return the path.

    Sheets: ``Resumo`` (the consolidated lines), ``Dados`` (the records
    that fed it) and ``Notas`` (import counts and warnings).
    """
    if report is None:
        report = ImportReport(rows_in=len(records), rows_out=len(records))

    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    report_path = out_dir / REPORT_FILENAME

    wb = Workbook()
    active_sheet = wb.active
    if active_sheet is not None:
        wb.remove(active_sheet)  # remove default sheet

    _rows_to_sheet(
        wb,
        "Resumo",
        CSV_HEADER,
        [[line.quantity, line.unit, line.resolved_code, line.specification] for line in lines],
    )
    _rows_to_sheet(
        wb,
        "Dados",
        RECORD_HEADER,
        [
            [r.date, r.recipe, r.lesson, r.ingredient, r.quantity, r.unit, r.category, r.code]
            for r in records
        ],
    )
    _write_notes(wb, report, len(lines))

    tmp_path = out_dir / "Resumo_Consolidado.tmp.xlsx"
    wb.save(tmp_path)
    tmp_path.replace(report_path)
    return report_path
