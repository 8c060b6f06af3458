"""I/O helpers — load input sheets as raw rows, write JSON/text artifacts."""

from __future__ import annotations

import json
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Literal, cast

import pandas as pd

RawRow = dict[str, Any]

_EXCEL_SUFFIXES = (".xlsx", ".xlsm", ".xltx", ".xltm")


class ImportDecodeError(ValueError):
    """The input file exists but could not be decoded into rows."""


# ── Loading ──────────────────────────────────────────────────────


def _read_csv(path: Path, delimiter: str | None) -> pd.DataFrame:
    last_exc: Exception | None = None
    sep = delimiter if delimiter else None
    engine: Literal["c", "python"] = "c" if delimiter else "python"
    for encoding in ("utf-8-sig", "utf-8", "latin-1"):
        try:
            return pd.read_csv(
                path,
                dtype="string",
                sep=sep,
                engine=engine,
                encoding=encoding,
                encoding_errors="strict",
                keep_default_na=False,
            )
        except (UnicodeDecodeError, pd.errors.ParserError) as exc:
            last_exc = exc
    raise ImportDecodeError(f"Could not read CSV {path} (decode or parse failed)") from last_exc


def _read_excel(path: Path, engine: str, sheet: str | int) -> pd.DataFrame:
    read_excel = cast(Callable[..., pd.DataFrame], getattr(pd, "read_excel"))
    try:
        # dtype=object keeps native cells: numbers, Timestamps, text.
        return read_excel(path, engine=engine, dtype=object, sheet_name=sheet)
    except ImportError:
        raise
    except Exception as exc:
        raise ImportDecodeError(f"Could not read spreadsheet {path}: {exc}") from exc


def load_table(
    path: Path, delimiter: str | None = None, sheet: str | int = 0
) -> pd.DataFrame:
    """Load a CSV or Excel file and return a raw DataFrame.

    Excel files are read from *sheet* (the first sheet by default).

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ImportDecodeError
        If the extension is not supported, or decoding/parsing fails.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    if not path.is_file():
        raise ImportDecodeError(f"Input path is not a file: {path}")

    suffix = path.suffix.lower()
    if suffix == ".csv":
        return _read_csv(path, delimiter)

    if suffix in _EXCEL_SUFFIXES:
        return _read_excel(path, "openpyxl", sheet)

    if suffix == ".xls":
        try:
            return _read_excel(path, "xlrd", sheet)
        except ImportError as exc:
            raise ImportDecodeError(
                "Unsupported .xls input unless 'xlrd' is installed. "
                "Either convert to .xlsx or add dependency: pip install xlrd"
            ) from exc

    raise ImportDecodeError(f"Unsupported file type: {suffix!r}. Use .csv, .xlsx, or .xls")


def _cell(value: Any) -> Any:
    if value is None or value is pd.NaT:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        return value
    item = getattr(value, "item", None)
    if callable(item) and not isinstance(value, (pd.Timestamp, str)):
        # numpy scalars -> builtin int/float
        return item()
    return value


def dataframe_to_rows(df: pd.DataFrame) -> list[RawRow]:
    """Convert *df* into ``[{header: cell}]`` with blanks as ``""``."""
    headers = [str(c) for c in df.columns]
    return [
        {header: _cell(value) for header, value in zip(headers, values)}
        for values in df.itertuples(index=False, name=None)
    ]


def load_rows(
    path: Path, delimiter: str | None = None, sheet: str | int = 0
) -> list[RawRow]:
    """Load *path* and return its rows as header -> raw cell mappings."""
    return dataframe_to_rows(load_table(path, delimiter=delimiter, sheet=sheet))


# ── Writing ──────────────────────────────────────────────────────


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    item = getattr(obj, "item", None)
    if callable(item):
        converted = item()
        if isinstance(converted, (str, int, float, bool)) or converted is None:
            return converted
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def write_text(path: Path, text: str, *, encoding: str = "utf-8") -> Path:
    """Write *text* to *path* atomically via a sibling temp file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(text, encoding=encoding, newline="")
    tmp_path.replace(path)
    return path


def write_json(path: Path, data: Any) -> Path:
    """Write *data* as pretty-printed JSON to *path* (atomic + deterministic)."""
    payload = json.dumps(
        data,
        indent=2,
        sort_keys=True,
        ensure_ascii=False,
        default=_json_default,
    ) + "\n"
    return write_text(path, payload)
