"""Import report persistence."""

from __future__ import annotations

from pathlib import Path

from ingredient_rollup.io import write_json
from ingredient_rollup.models import ImportReport


def write_import_report(out_dir: Path, report: ImportReport) -> Path:
    """Write ``import_report.json`` into *out_dir* and return the path."""
    return write_json(out_dir / "import_report.json", report.to_dict())
