"""Header detection and row normalization. Pure functions, no side effects."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from ingredient_rollup.models import ImportReport, IngredientUsageRecord
from ingredient_rollup.parsing import (
    canonical_unit,
    extract_date,
    is_blank,
    parse_number_with_flag,
)
from ingredient_rollup.utils import fold_text, strip_accents

# ── Column detection ────────────────────────────────────────────

# Checked in this order; the first field whose keyword occurs in the
# lower-cased header claims it.
_FIELD_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("date", ("data",)),
    ("recipe", ("receita", "aula", "uc")),
    ("ingredient", ("insumo", "ingred", "produto", "item")),
    ("quantity", ("qt", "quant")),
    ("unit", ("und", "unid")),
    ("category", ("tipo", "setor", "categoria")),
    ("code", ("cod",)),
]
_EXACT_UNIT_HEADERS = frozenset({"um"})

FALLBACK_HEADERS: dict[str, tuple[str, ...]] = {
    "date": ("DATA", "Data", "data"),
    "recipe": ("AULA", "RECEITA", "Aula", "Receita"),
    "ingredient": ("INSUMO", "Insumo", "insumo"),
    "quantity": ("QUANT.", "QUANT", "Quantidade"),
    "unit": ("UND", "Und", "un"),
    "category": ("TIPO", "Tipo"),
    "code": ("CODIGO", "Código", "Codigo"),
}

_LESSON_RE = re.compile(r"^\d+$")


def _match_field(header: str) -> str | None:
    low = header.lower()
    for field_name, keywords in _FIELD_KEYWORDS:
        if field_name == "unit" and low.strip() in _EXACT_UNIT_HEADERS:
            return field_name
        # "Código" only contains "cod" once accents are gone.
        haystack = strip_accents(low) if field_name == "code" else low
        if any(keyword in haystack for keyword in keywords):
            return field_name
    return None


def detect_column_mapping(headers: Iterable[Any]) -> dict[str, str]:
    """Infer ``{field: header}`` from a header row using keyword heuristics.

    Each header maps to at most one field.  When two headers claim the
    same field the later one wins.  Fields with no matching header are
    absent from the result.
    """
    mapping: dict[str, str] = {}
    for header in headers:
        if header is None:
            continue
        name = str(header)
        field_name = _match_field(name)
        if field_name is not None:
            mapping[field_name] = name
    return mapping


# ── Row normalization ───────────────────────────────────────────


def _cell_text(value: Any) -> str:
    if is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _resolve(row: Mapping[str, Any], mapping: Mapping[str, str], field_name: str) -> Any:
    header = mapping.get(field_name)
    if header is not None:
        return row.get(header)
    for fallback in FALLBACK_HEADERS.get(field_name, ()):
        value = row.get(fallback)
        if not is_blank(value):
            return value
    return None


def _lesson_index(recipe: str) -> int | None:
    if _LESSON_RE.fullmatch(recipe):
        return int(recipe)
    return None


def _first_headers(rows: Sequence[Mapping[str, Any]]) -> list[str]:
    if not rows:
        return []
    return [str(key) for key in rows[0].keys()]


def normalize_rows_with_report(
    rows: Sequence[Mapping[str, Any]],
    mapping: Mapping[str, str] | None = None,
    *,
    overrides: Mapping[str, str] | None = None,
) -> tuple[list[IngredientUsageRecord], ImportReport]:
    """Normalize raw sheet rows into records.

    Returns ``(records, report)``.  Rows without an ingredient or recipe
    are dropped; unreadable cells fall back to ``0`` / ``None`` / ``UN``
    and are counted in the report warnings.
    """
    if mapping is None:
        mapping = detect_column_mapping(_first_headers(rows))
    effective = dict(mapping)
    if overrides:
        effective.update(overrides)

    records: list[IngredientUsageRecord] = []
    bad_quantities = 0
    negative_quantities = 0
    bad_dates = 0

    for row in rows:
        recipe = _cell_text(_resolve(row, effective, "recipe"))
        ingredient = _cell_text(_resolve(row, effective, "ingredient"))
        if not recipe or not ingredient:
            continue

        raw_date = _resolve(row, effective, "date")
        iso_date = extract_date(raw_date)
        if iso_date is None and not is_blank(raw_date):
            bad_dates += 1

        quantity, parsed_ok = parse_number_with_flag(_resolve(row, effective, "quantity"))
        if not parsed_ok:
            bad_quantities += 1
        if quantity < 0:
            negative_quantities += 1
            quantity = 0.0

        records.append(
            IngredientUsageRecord(
                recipe=recipe,
                ingredient=ingredient,
                quantity=quantity,
                unit=canonical_unit(_resolve(row, effective, "unit")),
                category=fold_text(_resolve(row, effective, "category")),
                date=iso_date,
                code=_cell_text(_resolve(row, effective, "code")) or None,
                lesson=_lesson_index(recipe),
            )
        )

    report = ImportReport(
        rows_in=len(rows),
        rows_out=len(records),
        dropped_rows=len(rows) - len(records),
        distinct_dates=len({r.date for r in records if r.date}),
    )
    if report.dropped_rows:
        report.warnings.append(
            f"Dropped {report.dropped_rows} rows without ingredient or recipe"
        )
    if bad_quantities:
        report.warnings.append(
            f"Found {bad_quantities} unparseable quantities; counted as 0"
        )
    if negative_quantities:
        report.warnings.append(
            f"Found {negative_quantities} negative quantities; counted as 0"
        )
    if bad_dates:
        report.warnings.append(f"Found {bad_dates} rows with unparseable dates")
    if rows and not records:
        report.warnings.append("Normalized dataset is empty: no valid rows remain")

    return records, report


def normalize_rows(
    rows: Sequence[Mapping[str, Any]],
    mapping: Mapping[str, str] | None = None,
) -> list[IngredientUsageRecord]:
    """Normalize raw sheet rows into records (see :func:`normalize_rows_with_report`)."""
    records, _report = normalize_rows_with_report(rows, mapping)
    return records
