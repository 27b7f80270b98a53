"""Unit tests for the disk-backed snapshot store."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from aqisnap.core.contracts.snapshot import Snapshot
from aqisnap.core.errors import CorruptPointerError, PersistenceError
from aqisnap.store.snapshot_store import POINTER_FILENAME, SnapshotStore

CAPTURED_AT = datetime(2025, 1, 15, 12, 30, 5, 123000, tzinfo=UTC)


def _snapshot(data: Any = None, at: datetime = CAPTURED_AT) -> Snapshot:
    return Snapshot(captured_at=at, data=data if data is not None else {"rank": [1, 2]})


def _files(base: Path) -> dict[str, bytes]:
    return {p.name: p.read_bytes() for p in sorted(base.iterdir())}


def test_no_pointer_means_none(store: SnapshotStore) -> None:
    assert store.current_pointer() is None


def test_publish_writes_snapshot_then_pointer(store: SnapshotStore) -> None:
    """A publish leaves exactly one pointer naming a readable snapshot."""
    pointer = store.publish(_snapshot({"cities": ["Delhi"]}))

    assert pointer.filename == "aqi_2025_01_15_12_30_05.json"
    assert store.current_pointer() == pointer

    on_disk = json.loads((store.base_dir / POINTER_FILENAME).read_text(encoding="utf-8"))
    assert on_disk == {
        "capturedAt": "2025-01-15T12:30:05.123Z",
        "filename": "aqi_2025_01_15_12_30_05.json",
    }

    document = store.read(pointer.filename)
    assert document == {"capturedAt": "2025-01-15T12:30:05.123Z", "data": {"cities": ["Delhi"]}}
    assert store.load(pointer.filename).data == {"cities": ["Delhi"]}


def test_same_second_collision_is_an_error(store: SnapshotStore) -> None:
    """Two captures within one second must not overwrite each other."""
    store.publish(_snapshot({"first": True}))
    before = _files(store.base_dir)

    later_same_second = CAPTURED_AT.replace(microsecond=900000)
    with pytest.raises(PersistenceError):
        store.publish(_snapshot({"second": True}, at=later_same_second))

    assert _files(store.base_dir) == before


def test_pointer_write_failure_leaves_state_intact(
    store: SnapshotStore, monkeypatch: Any
) -> None:
    """If the pointer cannot be replaced, the new snapshot is rolled back."""
    store.publish(_snapshot({"old": True}))
    before = _files(store.base_dir)

    def boom(*_: Any, **__: Any) -> None:
        raise OSError("disk full")

    monkeypatch.setattr("aqisnap.store.snapshot_store.os.replace", boom)

    with pytest.raises(PersistenceError):
        store.publish(_snapshot({"new": True}, at=datetime(2025, 1, 16, tzinfo=UTC)))

    assert _files(store.base_dir) == before


def test_corrupt_pointer_raises(store: SnapshotStore) -> None:
    store.pointer_path.write_text("{not json", encoding="utf-8")
    with pytest.raises(CorruptPointerError):
        store.current_pointer()


def test_pointer_missing_fields_raises(store: SnapshotStore) -> None:
    store.pointer_path.write_text(json.dumps({"filename": "aqi_x.json"}), encoding="utf-8")
    with pytest.raises(CorruptPointerError):
        store.current_pointer()


def test_pointer_with_path_components_is_corrupt(store: SnapshotStore) -> None:
    payload = {"capturedAt": "2025-01-15T12:30:05.123Z", "filename": "../etc/passwd"}
    store.pointer_path.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(CorruptPointerError):
        store.current_pointer()


def test_read_missing_snapshot_raises(store: SnapshotStore) -> None:
    with pytest.raises(CorruptPointerError):
        store.read("aqi_2020_01_01_00_00_00.json")


def test_read_invalid_snapshot_raises(store: SnapshotStore) -> None:
    (store.base_dir / "aqi_2020_01_01_00_00_00.json").write_text("[]", encoding="utf-8")
    with pytest.raises(CorruptPointerError):
        store.read("aqi_2020_01_01_00_00_00.json")


def test_store_creates_base_dir(tmp_path: Path) -> None:
    base = tmp_path / "nested" / "data"
    SnapshotStore(base)
    assert base.is_dir()
