"""Tests for unit-aware consolidation and product codes."""

from __future__ import annotations

import pytest

from ingredient_rollup.codes import generate_code
from ingredient_rollup.consolidate import consolidate, rescale_for_sum
from ingredient_rollup.models import ConsolidatedLine, IngredientUsageRecord


def _rec(ingredient: str, quantity: float, unit: str, code: str | None = None) -> IngredientUsageRecord:
    return IngredientUsageRecord(
        recipe="Aula", ingredient=ingredient, quantity=quantity, unit=unit, code=code
    )


def _as_records(lines: list[ConsolidatedLine]) -> list[IngredientUsageRecord]:
    return [_rec(line.specification, line.quantity, line.unit) for line in lines]


def _by_key(lines: list[ConsolidatedLine]) -> dict[tuple[str, str], float]:
    return {(line.specification.lower(), line.unit): line.quantity for line in lines}


def test_litres_and_millilitres_merge_and_promote() -> None:
    lines = consolidate([_rec("Leite", 1.5, "L"), _rec("Leite", 500, "ML")])

    assert lines == [ConsolidatedLine(specification="Leite", quantity=2.0, unit="L")]


def test_small_totals_stay_in_base_unit() -> None:
    lines = consolidate([_rec("Manteiga", 0.5, "KG"), _rec("Manteiga", 200, "G")])

    assert len(lines) == 1
    assert lines[0].unit == "G"
    assert lines[0].quantity == pytest.approx(700.0)


def test_grams_promote_to_kilograms_with_three_decimals() -> None:
    lines = consolidate([_rec("Farinha", 1, "KG"), _rec("Farinha", 250, "G"), _rec("Farinha", 2.25, "G")])

    assert lines[0].unit == "KG"
    assert lines[0].quantity == 1.252


def test_names_merge_case_insensitively_keeping_first_spelling() -> None:
    lines = consolidate([_rec("leite integral", 200, "ML"), _rec("Leite Integral ", 300, "ML")])

    assert len(lines) == 1
    assert lines[0].specification == "leite integral"
    assert lines[0].quantity == 500.0


def test_different_unit_families_stay_separate() -> None:
    lines = consolidate([_rec("Ovo", 6, "UN"), _rec("Ovo", 1, "CX"), _rec("Ovo", 12, "un")])

    assert _by_key(lines) == {("ovo", "UN"): 18.0, ("ovo", "CX"): 1.0}


def test_raw_unit_tokens_are_canonicalized() -> None:
    lines = consolidate([_rec("Óleo", 1, "litro"), _rec("Óleo", 250, "ml")])

    assert lines == [ConsolidatedLine(specification="Óleo", quantity=1.25, unit="L")]


def test_first_external_code_is_kept() -> None:
    lines = consolidate([_rec("Sal", 10, "G"), _rec("Sal", 5, "G", code="SAL-9"), _rec("Sal", 1, "G", code="X")])

    assert lines[0].code == "SAL-9"
    assert lines[0].resolved_code == "SAL-9"


def test_generated_code_used_without_external_code() -> None:
    (line,) = consolidate([_rec("Açúcar Refinado", 2, "KG")])

    assert line.code is None
    assert line.resolved_code == "ESACUKG"


def test_sorted_with_portuguese_collation() -> None:
    names = ["Ovo", "Zimbro", "Açúcar", "abacaxi", "Banana", "Água"]

    lines = consolidate([_rec(name, 1, "UN") for name in names])

    assert [line.specification for line in lines] == [
        "abacaxi", "Açúcar", "Água", "Banana", "Ovo", "Zimbro",
    ]


def test_empty_input() -> None:
    assert consolidate([]) == []


def test_consolidating_a_summary_is_a_fixed_point() -> None:
    records = [
        _rec("Leite", 1.5, "L"), _rec("Leite", 700, "ML"),
        _rec("Farinha", 2.25, "KG"), _rec("Sal", 15, "G"),
        _rec("Ovo", 12, "UN"), _rec("Creme", 200, "ML"),
    ]
    first = consolidate(records)

    second = consolidate(_as_records(first))

    assert [(line.specification, line.unit) for line in second] == [
        (line.specification, line.unit) for line in first
    ]
    for a, b in zip(first, second):
        assert b.quantity == pytest.approx(a.quantity)


def test_consolidation_is_additive_over_disjoint_sets() -> None:
    set_a = [_rec("Farinha", 300, "G"), _rec("Leite", 200, "ML"), _rec("Ovo", 2, "UN")]
    set_b = [_rec("Farinha", 400, "G"), _rec("Leite", 0.3, "L"), _rec("Sal", 5, "G")]

    combined = _by_key(consolidate(set_a + set_b))
    left = _by_key(consolidate(set_a))
    right = _by_key(consolidate(set_b))

    assert combined.keys() == left.keys() | right.keys()
    for key, total in combined.items():
        assert total == pytest.approx(left.get(key, 0.0) + right.get(key, 0.0))


@pytest.mark.parametrize(
    ("quantity", "unit", "expected"),
    [
        (1.5, "L", (1500.0, "ML")),
        (2, "kg", (2000.0, "G")),
        (300, "G", (300, "G")),
        (4, "CX", (4, "CX")),
        (1, None, (1, "UN")),
    ],
)
def test_rescale_for_sum(quantity: float, unit: str | None, expected: tuple[float, str]) -> None:
    assert rescale_for_sum(quantity, unit) == expected


@pytest.mark.parametrize(
    ("specification", "unit", "expected"),
    [
        ("Açúcar Refinado", "KG", "ESACUKG"),
        ("Ovo", "un.", "ESOVOUN"),
        ("1kg de sal", "G", "ESKGDG"),
        ("Pé-de-moleque", "PCT", "ESPEDPCT"),
        ("", None, "ES"),
    ],
)
def test_generate_code(specification: str, unit: str | None, expected: str) -> None:
    assert generate_code(specification, unit) == expected
