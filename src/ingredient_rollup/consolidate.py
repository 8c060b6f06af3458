"""Unit-aware consolidation of usage records into a purchase summary."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import pandas as pd

from ingredient_rollup.models import ConsolidatedLine, IngredientUsageRecord
from ingredient_rollup.parsing import canonical_unit, parse_number
from ingredient_rollup.utils import pt_sort_key

# unit -> (factor, base unit) applied before summing
_TO_BASE: dict[str, tuple[float, str]] = {
    "L": (1000.0, "ML"),
    "KG": (1000.0, "G"),
}
# base unit -> (larger unit, threshold) applied after summing
_PROMOTE: dict[str, tuple[str, float]] = {
    "ML": ("L", 1000.0),
    "G": ("KG", 1000.0),
}
DEMOTION_DECIMALS = 3


def rescale_for_sum(quantity: float, unit: str | None) -> tuple[float, str]:
    """Express *quantity* in the summable base unit (``L -> ML``, ``KG -> G``)."""
    code = canonical_unit(unit)
    if code in _TO_BASE:
        factor, base = _TO_BASE[code]
        return quantity * factor, base
    return quantity, code


def _promote(quantity: float, unit: str) -> tuple[float, str]:
    if unit in _PROMOTE:
        larger, threshold = _PROMOTE[unit]
        if quantity >= threshold:
            return round(quantity / 1000.0, DEMOTION_DECIMALS), larger
    return quantity, unit


def _code_or_none(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def consolidate(records: Iterable[IngredientUsageRecord]) -> list[ConsolidatedLine]:
    """Sum quantities per (ingredient, base unit) and return sorted lines.

    Names are matched case-insensitively; each line keeps the first-seen
    spelling and the first external code found.  Totals of at least
    1000 ML / 1000 G are re-expressed in L / KG rounded to three
    decimals, the only lossy step.
    """
    rows: list[dict[str, Any]] = []
    for record in records:
        name = (record.ingredient or "").strip()
        quantity, unit = rescale_for_sum(parse_number(record.quantity), record.unit)
        rows.append(
            {
                "key": name.lower(),
                "unit": unit,
                "specification": name,
                "quantity": quantity,
                "code": _code_or_none(record.code),
            }
        )
    if not rows:
        return []

    grouped = (
        pd.DataFrame(rows)
        .groupby(["key", "unit"], sort=False, as_index=False)
        .agg(
            specification=("specification", "first"),
            quantity=("quantity", "sum"),
            code=("code", "first"),
        )
    )

    lines: list[ConsolidatedLine] = []
    for row in grouped.itertuples(index=False):
        quantity, unit = _promote(float(row.quantity), str(row.unit))
        lines.append(
            ConsolidatedLine(
                specification=str(row.specification),
                quantity=quantity,
                unit=unit,
                code=_code_or_none(row.code),
            )
        )
    lines.sort(key=lambda line: pt_sort_key(line.specification))
    return lines
