"""Cell coercion for units, pt-BR numbers and dates. Pure, never raise."""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta
from numbers import Real
from typing import Any

import pandas as pd

DEFAULT_UNIT = "UN"

# raw token (lower-cased, dots removed) -> canonical code
UNIT_SYNONYMS: dict[str, str] = {
    "kg": "KG", "kgs": "KG", "kilo": "KG", "quilo": "KG",
    "quilogram": "KG", "quilograma": "KG",
    "g": "G", "gr": "G", "grs": "G", "gram": "G", "grama": "G", "gramas": "G",
    "l": "L", "lt": "L", "lts": "L", "litro": "L", "litros": "L",
    "ml": "ML", "cc": "ML", "mililitro": "ML", "mililitros": "ML",
    "un": "UN", "und": "UN", "unid": "UN", "unidade": "UN", "unidades": "UN",
    "cx": "CX", "caixa": "CX", "caixas": "CX",
    "pct": "PCT", "pacote": "PCT", "pacotes": "PCT",
    "mc": "MC", "maco": "MC",
    "fr": "FR", "frasco": "FR",
}

# Days between the spreadsheet epoch (1899-12-30) and 1970-01-01.
SERIAL_UNIX_OFFSET = 25569
_UNIX_EPOCH = date(1970, 1, 1)

_LEADING_FLOAT_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_DAY_MONTH_YEAR_RE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4}|\d{2})$")
_HAS_DIGIT_RE = re.compile(r"\d")


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, float) and math.isnan(value):
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


# ── Units ────────────────────────────────────────────────────────


def canonical_unit(raw: Any) -> str:
    """Map a raw unit token to its canonical code.

    Unknown tokens pass through trimmed and upper-cased; blank input
    becomes ``UN``.
    """
    if is_blank(raw):
        return DEFAULT_UNIT
    text = str(raw).strip()
    key = text.lower().replace(".", "")
    if key in UNIT_SYNONYMS:
        return UNIT_SYNONYMS[key]
    return text.upper() or DEFAULT_UNIT


# ── Numbers ──────────────────────────────────────────────────────


def parse_number_with_flag(val: Any) -> tuple[float, bool]:
    """Parse a pt-BR formatted number, returning ``(value, parsed_ok)``.

    ``"1.234,50"`` -> ``(1234.5, True)``.  Blank input is ``(0.0, True)``;
    text with no leading number is ``(0.0, False)``.
    """
    if is_blank(val):
        return 0.0, True
    if _is_number(val):
        result = float(val)
        if math.isnan(result) or math.isinf(result):
            return 0.0, False
        return result, True

    token = str(val).replace(".", "").replace(",", ".", 1).strip()
    match = _LEADING_FLOAT_RE.match(token)
    if not match:
        return 0.0, False
    result = float(match.group(0))
    if math.isinf(result):
        return 0.0, False
    return result, True


def parse_number(val: Any) -> float:
    """Fail-soft variant of :func:`parse_number_with_flag`; failures give 0."""
    value, _ok = parse_number_with_flag(val)
    return value


# ── Dates ────────────────────────────────────────────────────────


def _serial_to_iso(serial: float) -> str | None:
    try:
        # half days round up: 45600.5 is the 5th, 45601.5 the 6th
        days = math.floor(float(serial) - SERIAL_UNIX_OFFSET + 0.5)
        return (_UNIX_EPOCH + timedelta(days=days)).isoformat()
    except (OverflowError, ValueError):
        return None


def _day_month_year_to_iso(text: str) -> str | None:
    match = _DAY_MONTH_YEAR_RE.match(text)
    if not match:
        return None
    day, month, year = match.groups()
    if len(year) == 2:
        year = f"20{year}"
    try:
        return date(int(year), int(month), int(day)).isoformat()
    except ValueError:
        return None


def _generic_to_iso(text: str) -> str | None:
    # pandas resolves "today"/"now" against the clock; only dated text counts.
    if not _HAS_DIGIT_RE.search(text):
        return None
    try:
        parsed = pd.to_datetime(text, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if parsed is None or pd.isna(parsed):
        return None
    return parsed.date().isoformat()


def extract_date(raw: Any) -> str | None:
    """Return *raw* as ``YYYY-MM-DD``, or ``None`` when it cannot be read.

    Accepts native dates/timestamps, spreadsheet serial day numbers and
    text.  Text is tried as ``D/M/Y`` (or ``D-M-Y``) before generic
    parsing, so ``"05/03/2024"`` is the 5th of March.
    """
    if raw is None or raw is pd.NaT:
        return None
    if isinstance(raw, (datetime, date)):
        # pd.Timestamp subclasses datetime
        return raw.date().isoformat() if isinstance(raw, datetime) else raw.isoformat()
    if _is_number(raw):
        if math.isnan(float(raw)):
            return None
        return _serial_to_iso(float(raw))

    text = str(raw).strip()
    if not text:
        return None
    return _day_month_year_to_iso(text) or _generic_to_iso(text)
