"""Product code generation for consolidated lines without an external code."""

from __future__ import annotations

import re

from ingredient_rollup.utils import strip_accents

_NON_LETTER_RE = re.compile(r"[^A-Za-z]")
_NON_ALNUM_RE = re.compile(r"[^A-Za-z0-9]")

CODE_PREFIX = "ES"


def generate_code(specification: str, unit: str | None) -> str:
    """Derive a short code: ``ES`` + 3 letters of the name + the unit.

    >>> generate_code("Açúcar Refinado", "KG")
    'ESACUKG'
    """
    base = _NON_LETTER_RE.sub("", strip_accents(specification or ""))[:3].upper()
    suffix = _NON_ALNUM_RE.sub("", str(unit or "")).upper()
    return f"{CODE_PREFIX}{base}{suffix}"
