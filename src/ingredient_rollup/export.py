"""CSV export of a consolidated summary."""

from __future__ import annotations

import csv
from collections.abc import Sequence
from pathlib import Path

import pandas as pd

from ingredient_rollup.io import write_text
from ingredient_rollup.models import ConsolidatedLine

CSV_HEADER = ["Quantidade", "Unidade", "Código", "Especificação"]
CSV_FILENAME = "resumo_consolidado.csv"
DELIMITERS = {"comma": ",", "semicolon": ";"}


def format_quantity(quantity: float) -> str:
    """Render a quantity as text: ``2.0 -> "2"``, ``1.5 -> "1.5"``."""
    value = float(quantity)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def summary_to_frame(lines: Sequence[ConsolidatedLine]) -> pd.DataFrame:
    """Tabulate *lines* with the export column headers."""
    return pd.DataFrame(
        [
            [format_quantity(line.quantity), line.unit, line.resolved_code, line.specification]
            for line in lines
        ],
        columns=CSV_HEADER,
    )


def summary_to_csv(lines: Sequence[ConsolidatedLine], delimiter: str = ",") -> str:
    """Return the summary as CSV text, every field quoted."""
    if len(delimiter) != 1:
        raise ValueError(f"Delimiter must be a single character, got {delimiter!r}")
    return summary_to_frame(lines).to_csv(
        sep=delimiter,
        index=False,
        quoting=csv.QUOTE_ALL,
        lineterminator="\n",
    )


def write_summary_csv(
    out_dir: Path, lines: Sequence[ConsolidatedLine], delimiter: str = ","
) -> Path:
    """Write ``resumo_consolidado.csv`` into *out_dir* and return the path.

    Written with a UTF-8 BOM so spreadsheet apps keep the accents.
    """
    return write_text(
        Path(out_dir) / CSV_FILENAME,
        summary_to_csv(lines, delimiter),
        encoding="utf-8-sig",
    )
