"""Named snapshot ("curso") persistence."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Protocol

from ingredient_rollup.io import write_json

SerializedDataset = list[dict[str, Any]]

DEFAULT_STORE_PATH = Path.home() / ".ingredient_rollup" / "snapshots.json"


class SnapshotStoreError(ValueError):
    """The backing store exists but cannot be read as a snapshot document."""


class SnapshotStore(Protocol):
    def save(self, name: str, records: SerializedDataset) -> None: ...

    def load(self, name: str) -> SerializedDataset | None: ...

    def list(self) -> list[str]: ...

    def delete(self, name: str) -> bool: ...


class JsonSnapshotStore:
    """All snapshots in one JSON object: ``{name: [record, ...]}``.

    Every mutation rewrites the whole file atomically.
    """

    def __init__(self, path: Path = DEFAULT_STORE_PATH) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, SerializedDataset]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise SnapshotStoreError(f"Cannot read snapshot store {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise SnapshotStoreError(
                f"Snapshot store {self.path} must contain a JSON object"
            )
        return data

    def save(self, name: str, records: SerializedDataset) -> None:
        data = self._read()
        data[name] = list(records)
        write_json(self.path, data)

    def load(self, name: str) -> SerializedDataset | None:
        records = self._read().get(name)
        if records is None:
            return None
        if not isinstance(records, list):
            raise SnapshotStoreError(f"Snapshot {name!r} is not a record list")
        return records

    def list(self) -> list[str]:
        return sorted(self._read())

    def delete(self, name: str) -> bool:
        data = self._read()
        if name not in data:
            return False
        del data[name]
        write_json(self.path, data)
        return True
