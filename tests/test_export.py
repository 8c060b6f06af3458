from __future__ import annotations

from pathlib import Path

import pytest

from ingredient_rollup.export import (
    CSV_FILENAME,
    format_quantity,
    summary_to_csv,
    write_summary_csv,
)
from ingredient_rollup.models import ConsolidatedLine


def test_summary_csv_matches_expected_text() -> None:
    lines = [ConsolidatedLine(specification="Leite", quantity=2.0, unit="L")]

    assert summary_to_csv(lines) == (
        '"Quantidade","Unidade","Código","Especificação"\n'
        '"2","L","ESLEIL","Leite"\n'
    )


def test_summary_csv_semicolon_and_external_code() -> None:
    lines = [
        ConsolidatedLine(specification="Farinha", quantity=1.25, unit="KG", code="FAR-1"),
        ConsolidatedLine(specification="Ovo", quantity=12, unit="UN"),
    ]

    text = summary_to_csv(lines, delimiter=";")

    assert text.splitlines() == [
        '"Quantidade";"Unidade";"Código";"Especificação"',
        '"1.25";"KG";"FAR-1";"Farinha"',
        '"12";"UN";"ESOVOUN";"Ovo"',
    ]


def test_embedded_quotes_are_doubled() -> None:
    lines = [ConsolidatedLine(specification='Queijo "Minas"', quantity=300, unit="G")]

    text = summary_to_csv(lines)

    assert '"Queijo ""Minas"""' in text


def test_empty_summary_is_header_only() -> None:
    assert summary_to_csv([]) == '"Quantidade","Unidade","Código","Especificação"\n'


def test_multi_character_delimiter_rejected() -> None:
    with pytest.raises(ValueError, match="single character"):
        summary_to_csv([], delimiter=";;")


@pytest.mark.parametrize(
    ("quantity", "expected"),
    [(2.0, "2"), (0, "0"), (1.5, "1.5"), (1.252, "1.252"), (700.0, "700")],
)
def test_format_quantity(quantity: float, expected: str) -> None:
    assert format_quantity(quantity) == expected


def test_write_summary_csv_writes_bom_and_returns_path(tmp_path: Path) -> None:
    lines = [ConsolidatedLine(specification="Açúcar", quantity=1, unit="KG")]

    path = write_summary_csv(tmp_path / "out", lines)

    assert path == tmp_path / "out" / CSV_FILENAME
    raw = path.read_bytes()
    assert raw.startswith(b"\xef\xbb\xbf")
    assert '"1","KG","ESACUKG","Açúcar"' in raw.decode("utf-8-sig")
