from __future__ import annotations

from .snapshot import Pointer, Snapshot, format_timestamp, snapshot_filename

__all__ = ["Pointer", "Snapshot", "format_timestamp", "snapshot_filename"]
