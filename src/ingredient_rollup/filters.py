"""Record filtering and display grouping."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date, datetime
from typing import Any

from ingredient_rollup.models import ALL_CATEGORIES, FilterConfig, IngredientUsageRecord
from ingredient_rollup.parsing import extract_date
from ingredient_rollup.utils import fold_text

NO_DATE_LABEL = "Sem data"
NO_RECIPE_LABEL = "Sem receita"


def _as_date(value: str | date | None) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    iso = extract_date(value)
    return date.fromisoformat(iso) if iso is not None else None


def _in_range(value: Any, start: Any, end: Any) -> bool:
    if start is not None and value < start:
        return False
    if end is not None and value > end:
        return False
    return True


def filter_records(
    records: Iterable[IngredientUsageRecord],
    config: FilterConfig | None = None,
) -> list[IngredientUsageRecord]:
    """Return the records matching every predicate in *config*.

    Records without a date (or lesson) are never excluded by the
    corresponding range.
    """
    if config is None:
        config = FilterConfig()

    category = fold_text(config.category)
    any_category = category in ALL_CATEGORIES or not category
    search = config.search.strip().lower()
    date_start = _as_date(config.date_start)
    date_end = _as_date(config.date_end)

    result: list[IngredientUsageRecord] = []
    for record in records:
        if not any_category and fold_text(record.category) != category:
            continue
        if search and (
            search not in record.ingredient.lower() and search not in record.recipe.lower()
        ):
            continue
        record_date = _as_date(record.date)
        if record_date is not None and not _in_range(record_date, date_start, date_end):
            continue
        if record.lesson is not None and not _in_range(
            record.lesson, config.lesson_start, config.lesson_end
        ):
            continue
        result.append(record)
    return result


def categories(records: Iterable[IngredientUsageRecord]) -> list[str]:
    """Distinct non-empty categories, sorted; the choices for a category filter."""
    return sorted({r.category for r in records if r.category})


def group_by_date_recipe(
    records: Sequence[IngredientUsageRecord],
) -> dict[str, dict[str, list[IngredientUsageRecord]]]:
    """Group records as ``{date: {recipe: [records]}}`` for display.

    Dates are sorted (``Sem data`` sorts after ISO dates); recipes keep
    their first-seen order.
    """
    grouped: dict[str, dict[str, list[IngredientUsageRecord]]] = {}
    for record in records:
        by_recipe = grouped.setdefault(record.date or NO_DATE_LABEL, {})
        by_recipe.setdefault(record.recipe or NO_RECIPE_LABEL, []).append(record)
    return {key: grouped[key] for key in sorted(grouped)}
