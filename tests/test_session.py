"""Tests for the session command set."""

from __future__ import annotations

from pathlib import Path

import pytest

from ingredient_rollup.io import ImportDecodeError
from ingredient_rollup.models import FilterConfig, IngredientUsageRecord
from ingredient_rollup.session import (
    NoSummaryError,
    Session,
    SessionError,
    SnapshotNotFoundError,
)
from ingredient_rollup.snapshots import JsonSnapshotStore

ROWS = [
    {"DATA": "05/03/2024", "RECEITA": "Bolo", "INSUMO": "Leite", "QUANT.": "1,5", "UND": "L", "TIPO": "Confeitaria"},
    {"DATA": "06/03/2024", "RECEITA": "Pudim", "INSUMO": "Leite", "QUANT.": "500", "UND": "ml", "TIPO": "Confeitaria"},
    {"DATA": "06/03/2024", "RECEITA": "Pão", "INSUMO": "Farinha", "QUANT.": "2", "UND": "kg", "TIPO": "Padaria"},
]


@pytest.fixture
def store(tmp_path: Path) -> JsonSnapshotStore:
    return JsonSnapshotStore(tmp_path / "snapshots.json")


@pytest.fixture
def session(store: JsonSnapshotStore) -> Session:
    s = Session(store=store)
    s.import_rows(ROWS)
    return s


def test_import_rows_replaces_dataset_and_reports(session: Session) -> None:
    assert len(session.records) == 3
    assert session.last_report is not None
    assert session.last_report.distinct_dates == 2
    assert session.last_summary is None


def test_generate_and_export_summary(session: Session) -> None:
    lines = session.generate_summary()

    assert [(line.specification, line.quantity, line.unit) for line in lines] == [
        ("Farinha", 2.0, "KG"),
        ("Leite", 2.0, "L"),
    ]
    assert session.export_summary().splitlines()[2] == '"2","L","ESLEIL","Leite"'


def test_summary_uses_filters(session: Session) -> None:
    lines = session.generate_summary(FilterConfig(category="padaria"))

    assert [line.specification for line in lines] == ["Farinha"]
    assert session.filters.category == "padaria"


def test_export_without_summary_raises(session: Session) -> None:
    with pytest.raises(NoSummaryError, match="Generate the summary first"):
        session.export_summary()


def test_empty_summary_counts_as_missing(session: Session) -> None:
    session.generate_summary(FilterConfig(search="inexistente"))

    with pytest.raises(NoSummaryError):
        session.export_summary()


def test_new_import_discards_last_summary(session: Session) -> None:
    session.generate_summary()

    session.import_rows(ROWS[:1])

    assert session.last_summary is None
    with pytest.raises(NoSummaryError):
        session.export_summary()


def test_write_summary_creates_csv(session: Session, tmp_path: Path) -> None:
    session.generate_summary()

    path = session.write_summary(tmp_path / "out", delimiter=";")

    assert path.read_text(encoding="utf-8-sig").startswith('"Quantidade";"Unidade"')


def test_grouped_view(session: Session) -> None:
    grouped = session.grouped()

    assert list(grouped) == ["2024-03-05", "2024-03-06"]
    assert list(grouped["2024-03-06"]) == ["Pudim", "Pão"]


def test_import_file_failure_keeps_dataset(session: Session, tmp_path: Path) -> None:
    bad = tmp_path / "notes.txt"
    bad.write_text("x", encoding="utf-8")

    with pytest.raises(ImportDecodeError):
        session.import_file(bad)

    assert len(session.records) == 3


def test_import_file_csv(tmp_path: Path) -> None:
    path = tmp_path / "aulas.csv"
    path.write_text("Receita;Insumo;Qtd;Und\nBolo;Ovo;3;un\n", encoding="utf-8")
    session = Session()

    report = session.import_file(path, delimiter=";")

    assert report.rows_out == 1
    assert session.records[0].quantity == 3.0


def test_snapshot_round_trip(session: Session, store: JsonSnapshotStore) -> None:
    assert session.save_snapshot(" Confeitaria ") == 3
    assert session.list_snapshots() == ["Confeitaria"]

    other = Session(store=store)
    report = other.load_snapshot("Confeitaria")

    assert other.records == session.records
    assert report.rows_out == 3
    assert report.warnings == []


def test_load_snapshot_skips_invalid_entries(store: JsonSnapshotStore) -> None:
    valid = IngredientUsageRecord(recipe="Bolo", ingredient="Ovo", quantity=2).to_dict()
    store.save("curso", [valid, {"recipe": "Bolo"}, "lixo"])  # type: ignore[list-item]
    session = Session(store=store)

    report = session.load_snapshot("curso")

    assert len(session.records) == 1
    assert report.dropped_rows == 2
    assert report.warnings == ["Skipped 2 invalid records in snapshot 'curso'"]


def test_load_missing_snapshot_raises(session: Session) -> None:
    with pytest.raises(SnapshotNotFoundError, match="Snapshot not found"):
        session.load_snapshot("nada")

    assert len(session.records) == 3


def test_delete_snapshot(session: Session) -> None:
    session.save_snapshot("curso")

    assert session.delete_snapshot("curso") is True
    assert session.delete_snapshot("curso") is False
    assert session.list_snapshots() == []


def test_snapshot_name_must_not_be_blank(session: Session) -> None:
    with pytest.raises(ValueError, match="must not be empty"):
        session.save_snapshot("  ")


def test_snapshots_need_a_store() -> None:
    with pytest.raises(SessionError, match="No snapshot store"):
        Session().list_snapshots()


def test_snapshot_names_are_trimmed_on_every_command(session: Session) -> None:
    session.save_snapshot(" Curso ")

    report = session.load_snapshot(" Curso ")

    assert report.rows_out == 3
    assert session.delete_snapshot("Curso  ") is True
    assert session.list_snapshots() == []


def test_blank_name_rejected_for_load_and_delete(session: Session) -> None:
    with pytest.raises(ValueError, match="must not be empty"):
        session.load_snapshot(" ")

    with pytest.raises(ValueError, match="must not be empty"):
        session.delete_snapshot("")
