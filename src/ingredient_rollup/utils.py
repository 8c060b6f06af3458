"""Shared helpers — hashing, timestamps, accent folding."""

from __future__ import annotations

import hashlib
import unicodedata
from datetime import datetime, timezone
from pathlib import Path


def sha256_file(path: Path) -> str:
    """Return the hex SHA-256 digest of *path*."""
    h = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def utcnow_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def strip_accents(text: str) -> str:
    """Drop combining marks after NFD decomposition (``"Açúcar"`` -> ``"Acucar"``)."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def fold_text(value: object) -> str:
    """Accent-strip, trim and lower-case *value* for comparisons."""
    if value is None:
        return ""
    return strip_accents(str(value)).strip().lower()


def pt_sort_key(text: str) -> tuple[str, str, str]:
    """Collation key approximating pt-BR ordering.

    Accented letters sort next to their base letter; ties fall back to
    case-insensitive then raw comparison so the order stays total.
    """
    return (strip_accents(text).casefold(), text.casefold(), text)
