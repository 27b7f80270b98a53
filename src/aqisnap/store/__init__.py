from __future__ import annotations

from .snapshot_store import POINTER_FILENAME, SnapshotStore

__all__ = ["POINTER_FILENAME", "SnapshotStore"]
