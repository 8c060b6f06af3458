"""Session state + the user command set (import, filter, summarize, snapshots)."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from ingredient_rollup.consolidate import consolidate
from ingredient_rollup.export import summary_to_csv, write_summary_csv
from ingredient_rollup.filters import filter_records, group_by_date_recipe
from ingredient_rollup.io import load_rows
from ingredient_rollup.models import (
    ConsolidatedLine,
    FilterConfig,
    ImportReport,
    IngredientUsageRecord,
)
from ingredient_rollup.pipeline import normalize_rows_with_report
from ingredient_rollup.snapshots import SnapshotStore


class SessionError(Exception):
    """Base class for user-facing session failures."""


class NoSummaryError(SessionError):
    """Export requested before any summary was generated."""


class SnapshotNotFoundError(SessionError, KeyError):
    """No snapshot is stored under the requested name."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


def _snapshot_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValueError("Snapshot name must not be empty")
    return name


class Session:
    """One user's working set: the dataset plus the last summary.

    The dataset is replaced wholesale by :meth:`import_file`,
    :meth:`import_rows` or :meth:`load_snapshot`; each replacement
    discards the last summary.
    """

    def __init__(self, store: SnapshotStore | None = None) -> None:
        self.store = store
        self.records: list[IngredientUsageRecord] = []
        self.last_summary: list[ConsolidatedLine] | None = None
        self.last_report: ImportReport | None = None
        self.filters = FilterConfig()

    # ── Import ──────────────────────────────────────────────────

    def _replace(self, records: list[IngredientUsageRecord], report: ImportReport) -> ImportReport:
        self.records = records
        self.last_report = report
        self.last_summary = None
        return report

    def import_rows(
        self,
        rows: Sequence[Mapping[str, Any]],
        *,
        overrides: Mapping[str, str] | None = None,
    ) -> ImportReport:
        """Normalize already-decoded rows and make them the dataset."""
        records, report = normalize_rows_with_report(rows, overrides=overrides)
        return self._replace(records, report)

    def import_file(
        self,
        path: Path,
        *,
        overrides: Mapping[str, str] | None = None,
        delimiter: str | None = None,
    ) -> ImportReport:
        """Load *path* and replace the dataset.

        Decode failures propagate (``FileNotFoundError`` /
        ``ImportDecodeError``) and leave the current dataset untouched.
        """
        rows = load_rows(path, delimiter=delimiter)
        return self.import_rows(rows, overrides=overrides)

    # ── Filter + summary ────────────────────────────────────────

    def apply_filters(self, config: FilterConfig | None = None) -> list[IngredientUsageRecord]:
        if config is not None:
            self.filters = config
        return filter_records(self.records, self.filters)

    def grouped(self, config: FilterConfig | None = None) -> dict[str, dict[str, list[IngredientUsageRecord]]]:
        return group_by_date_recipe(self.apply_filters(config))

    def generate_summary(self, config: FilterConfig | None = None) -> list[ConsolidatedLine]:
        """Consolidate the filtered view and remember it for export."""
        self.last_summary = consolidate(self.apply_filters(config))
        return self.last_summary

    def _require_summary(self) -> list[ConsolidatedLine]:
        if not self.last_summary:
            raise NoSummaryError("No summary to export. Generate the summary first.")
        return self.last_summary

    def export_summary(self, delimiter: str = ",") -> str:
        return summary_to_csv(self._require_summary(), delimiter)

    def write_summary(self, out_dir: Path, delimiter: str = ",") -> Path:
        return write_summary_csv(out_dir, self._require_summary(), delimiter)

    # ── Snapshots ───────────────────────────────────────────────

    def _require_store(self) -> SnapshotStore:
        if self.store is None:
            raise SessionError("No snapshot store configured")
        return self.store

    def save_snapshot(self, name: str) -> int:
        """Persist the current dataset under *name*; returns the record count."""
        name = _snapshot_name(name)
        self._require_store().save(name, [r.to_dict() for r in self.records])
        return len(self.records)

    def load_snapshot(self, name: str) -> ImportReport:
        """Replace the dataset with the snapshot stored under *name*.

        Entries that no longer form a valid record are skipped and
        counted as dropped rows.
        """
        name = _snapshot_name(name)
        payload = self._require_store().load(name)
        if payload is None:
            raise SnapshotNotFoundError(f"Snapshot not found: {name!r}")

        records: list[IngredientUsageRecord] = []
        for entry in payload:
            if not isinstance(entry, Mapping):
                continue
            try:
                records.append(IngredientUsageRecord.from_dict(entry))
            except (TypeError, ValueError):
                continue

        report = ImportReport(
            rows_in=len(payload),
            rows_out=len(records),
            dropped_rows=len(payload) - len(records),
            distinct_dates=len({r.date for r in records if r.date}),
        )
        if report.dropped_rows:
            report.warnings.append(
                f"Skipped {report.dropped_rows} invalid records in snapshot {name!r}"
            )
        return self._replace(records, report)

    def delete_snapshot(self, name: str) -> bool:
        return self._require_store().delete(_snapshot_name(name))

    def list_snapshots(self) -> list[str]:
        return self._require_store().list()
