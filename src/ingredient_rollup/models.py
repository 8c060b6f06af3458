"""Data models / typed records used across the package."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from numbers import Integral, Real
from typing import Any

from ingredient_rollup.codes import generate_code
from ingredient_rollup.parsing import extract_date, parse_number

ALL_CATEGORIES = frozenset({"all", "todos"})


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


def _to_non_negative_float(value: Any, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise TypeError(f"{field_name} must be a number")
    result = float(value)
    if math.isnan(result) or result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


def _to_string_list(values: Sequence[Any] | None, field_name: str) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        raise TypeError(f"{field_name} must be a sequence of strings")
    normalized: list[str] = []
    for item in values:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} items must be strings")
        normalized.append(item)
    return normalized


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _to_date_endpoint(value: Any, field_name: str) -> str | date | None:
    if value is None or isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    iso = extract_date(text)
    if iso is None:
        raise ValueError(f"{field_name} is not a readable date: {value!r}")
    return iso


@dataclass(frozen=True)
class IngredientUsageRecord:
    """One ingredient used by one recipe (or lesson) on one date.

    Only the normalizer and snapshot loading build these; both guarantee
    non-empty ``ingredient`` and ``recipe``.
    """

    recipe: str
    ingredient: str
    quantity: float = 0.0
    unit: str = "UN"
    category: str = ""
    date: str | None = None
    code: str | None = None
    lesson: int | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.recipe, str) or not self.recipe.strip():
            raise ValueError("recipe must be a non-empty string")
        if not isinstance(self.ingredient, str) or not self.ingredient.strip():
            raise ValueError("ingredient must be a non-empty string")
        if not isinstance(self.unit, str) or not self.unit:
            raise ValueError("unit must be a non-empty string")
        object.__setattr__(self, "quantity", _to_non_negative_float(self.quantity, "quantity"))
        if self.lesson is not None:
            object.__setattr__(self, "lesson", _to_non_negative_int(self.lesson, "lesson"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "recipe": self.recipe,
            "lesson": self.lesson,
            "ingredient": self.ingredient,
            "quantity": self.quantity,
            "unit": self.unit,
            "category": self.category,
            "code": self.code,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> IngredientUsageRecord:
        """Rebuild a record from :meth:`to_dict` output.

        Snapshots exported by the older browser tool use the Portuguese
        keys ``data/receita/insumo/qt/um/tipo``; those are accepted too.
        """

        def pick(*keys: str) -> Any:
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return None

        quantity = pick("quantity", "qt")
        lesson = pick("lesson")
        return cls(
            recipe=str(pick("recipe", "receita") or "").strip(),
            ingredient=str(pick("ingredient", "insumo") or "").strip(),
            quantity=parse_number(quantity),
            unit=str(pick("unit", "um") or "UN"),
            category=str(pick("category", "tipo") or ""),
            date=_optional_text(pick("date", "data")),
            code=_optional_text(pick("code")),
            lesson=int(lesson) if lesson is not None else None,
        )


@dataclass(frozen=True)
class ConsolidatedLine:
    """Aggregated total for one (ingredient, unit) pair."""

    specification: str
    quantity: float
    unit: str
    code: str | None = None

    @property
    def resolved_code(self) -> str:
        if self.code:
            return self.code
        return generate_code(self.specification, self.unit)

    def to_dict(self) -> dict[str, Any]:
        return {
            "specification": self.specification,
            "quantity": self.quantity,
            "unit": self.unit,
            "code": self.resolved_code,
        }


@dataclass
class FilterConfig:
    """User-selected predicates for :func:`ingredient_rollup.filters.filter_records`.

    Unset range endpoints are unbounded. Text endpoints are read like
    sheet dates (``"10/03/2024"`` is stored as ``"2024-03-10"``); unreadable
    text raises ``ValueError``.
    """

    category: str = "all"
    search: str = ""
    date_start: str | date | None = None
    date_end: str | date | None = None
    lesson_start: int | None = None
    lesson_end: int | None = None

    def __post_init__(self) -> None:
        if not self.category:
            self.category = "all"
        self.date_start = _to_date_endpoint(self.date_start, "date_start")
        self.date_end = _to_date_endpoint(self.date_end, "date_end")
        if self.search is None:
            self.search = ""
        if self.lesson_start is not None:
            self.lesson_start = _to_non_negative_int(self.lesson_start, "lesson_start")
        if self.lesson_end is not None:
            self.lesson_end = _to_non_negative_int(self.lesson_end, "lesson_end")

    def to_dict(self) -> dict[str, Any]:
        def _iso(value: str | date | None) -> str | None:
            if isinstance(value, date):
                return value.isoformat()
            return value

        return {
            "category": self.category,
            "search": self.search,
            "date_start": _iso(self.date_start),
            "date_end": _iso(self.date_end),
            "lesson_start": self.lesson_start,
            "lesson_end": self.lesson_end,
        }


@dataclass
class ImportReport:
    """Counts and warnings produced while normalizing one sheet.

    Contract invariant: ``dropped_rows == rows_in - rows_out``.
    """

    rows_in: int = 0
    rows_out: int = 0
    dropped_rows: int = 0
    distinct_dates: int = 0
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.rows_in = _to_non_negative_int(self.rows_in, "rows_in")
        self.rows_out = _to_non_negative_int(self.rows_out, "rows_out")
        self.dropped_rows = _to_non_negative_int(self.dropped_rows, "dropped_rows")
        self.distinct_dates = _to_non_negative_int(self.distinct_dates, "distinct_dates")
        self.warnings = _to_string_list(self.warnings, "warnings")
        if self.rows_out > self.rows_in:
            raise ValueError("rows_out must be <= rows_in")
        expected_dropped = self.rows_in - self.rows_out
        if self.dropped_rows != expected_dropped:
            raise ValueError("dropped_rows must equal rows_in - rows_out")

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows_in": self.rows_in,
            "rows_out": self.rows_out,
            "dropped_rows": self.dropped_rows,
            "distinct_dates": self.distinct_dates,
            "warnings": list(self.warnings),
        }


@dataclass
class RunManifest:
    """Audit-trail manifest for a single summary run."""

    tool: str = "ingredient-rollup"
    version: str = ""
    run_id: str = ""
    input_path: str = ""
    snapshot: str = ""
    output_dir: str = ""
    created_at_utc: str = ""
    rows_in: int = 0
    rows_out: int = 0
    summary_lines: int = 0
    sha256: str = ""
    filters: dict[str, Any] = field(default_factory=dict)
    status: str = "success"
    error_code: int | None = None
    error_message: str = ""

    def __post_init__(self) -> None:
        self.rows_in = _to_non_negative_int(self.rows_in, "rows_in")
        self.rows_out = _to_non_negative_int(self.rows_out, "rows_out")
        self.summary_lines = _to_non_negative_int(self.summary_lines, "summary_lines")
        if self.status not in {"success", "failed"}:
            raise ValueError("status must be 'success' or 'failed'")

    def to_dict(self) -> dict[str, Any]:
        return {
            "tool": self.tool,
            "version": self.version,
            "run_id": self.run_id,
            "input_path": self.input_path,
            "snapshot": self.snapshot,
            "output_dir": self.output_dir,
            "created_at_utc": self.created_at_utc,
            "rows_in": self.rows_in,
            "rows_out": self.rows_out,
            "summary_lines": self.summary_lines,
            "sha256": self.sha256,
            "filters": dict(self.filters),
            "status": self.status,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }
