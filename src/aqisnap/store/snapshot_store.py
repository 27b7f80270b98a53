"""Disk-backed store for snapshots and the latest-snapshot pointer.

Layout
------
- `<data_dir>/metadata.json`            : the singleton `Pointer`
- `<data_dir>/aqi_YYYY_MM_DD_HH_MM_SS.json` : one file per `Snapshot`

Durability ordering
-------------------
`publish` writes the snapshot with exclusive create, flushes and fsyncs it,
and only then replaces the pointer (temp file + `os.replace`). A reader can
therefore never observe a pointer naming a file that is not fully written.

Snapshots are never overwritten or deleted. A filename collision (two
captures within the same second) raises `PersistenceError`.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from aqisnap.core.contracts.snapshot import Pointer, Snapshot
from aqisnap.core.errors import CorruptPointerError, PersistenceError
from aqisnap.core.settings import get_logger

POINTER_FILENAME = "metadata.json"

logger = get_logger("aqisnap.store")


def _dump(payload: dict[str, Any], fh: Any) -> None:
    json.dump(payload, fh, ensure_ascii=False, indent=2)
    fh.write("\n")
    fh.flush()
    os.fsync(fh.fileno())


class SnapshotStore:
    """Persist snapshots and the pointer as JSON files under `base_dir`."""

    def __init__(self, base_dir: Path) -> None:
        self.base_dir: Path = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    @property
    def pointer_path(self) -> Path:
        return self.base_dir / POINTER_FILENAME

    def snapshot_path(self, filename: str) -> Path:
        return self.base_dir / filename

    def has_snapshot(self, filename: str) -> bool:
        return self.snapshot_path(filename).is_file()

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def current_pointer(self) -> Pointer | None:
        """Return the current pointer, or ``None`` if none was ever published.

        Raises
        ------
        CorruptPointerError
            If the pointer file exists but cannot be read or validated.
        """
        path = self.pointer_path
        if not path.exists():
            return None
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            return Pointer.model_validate(raw)
        except (OSError, ValueError, ValidationError) as exc:
            raise CorruptPointerError(f"Unreadable pointer {path}: {exc}") from exc

    def read(self, filename: str) -> dict[str, Any]:
        """Return the stored snapshot document (``capturedAt`` + ``data``).

        Raises
        ------
        CorruptPointerError
            If the file is missing or is not a valid snapshot document.
        """
        path = self.snapshot_path(filename)
        if not path.is_file():
            raise CorruptPointerError(f"Snapshot file not found: {path}")
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            Snapshot.model_validate(raw)
        except (OSError, ValueError, ValidationError) as exc:
            raise CorruptPointerError(f"Invalid snapshot {path}: {exc}") from exc
        return raw

    def load(self, filename: str) -> Snapshot:
        return Snapshot.model_validate(self.read(filename))

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    def publish(self, snapshot: Snapshot) -> Pointer:
        """Write `snapshot`, then point `metadata.json` at it.

        Raises
        ------
        PersistenceError
            If the snapshot name is already taken or any write fails. When
            raised, the previous pointer is untouched and no partial snapshot
            file is left behind.
        """
        path = self.snapshot_path(snapshot.filename)
        try:
            fh = path.open("x", encoding="utf-8")
        except FileExistsError as exc:
            raise PersistenceError(f"Snapshot {path.name} already exists") from exc
        except OSError as exc:
            raise PersistenceError(f"Cannot create snapshot {path}: {exc}") from exc

        try:
            with fh:
                _dump(snapshot.to_document(), fh)
        except (OSError, TypeError, ValueError) as exc:
            path.unlink(missing_ok=True)
            raise PersistenceError(f"Failed writing snapshot {path}: {exc}") from exc
        logger.info("Snapshot saved to %s", path.name)

        pointer = Pointer.for_snapshot(snapshot)
        try:
            self._replace_pointer(pointer)
        except PersistenceError:
            # Nothing references the new file yet.
            path.unlink(missing_ok=True)
            raise
        logger.info("Pointer updated -> %s", pointer.filename)
        return pointer

    def _replace_pointer(self, pointer: Pointer) -> None:
        tmp = self.pointer_path.with_suffix(".json.tmp")
        try:
            with tmp.open("w", encoding="utf-8") as fh:
                _dump(pointer.to_document(), fh)
            os.replace(tmp, self.pointer_path)
        except OSError as exc:
            tmp.unlink(missing_ok=True)
            raise PersistenceError(f"Failed updating pointer: {exc}") from exc


__all__ = ["POINTER_FILENAME", "SnapshotStore"]
