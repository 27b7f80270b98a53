"""Snapshot and Pointer contracts.

This module defines the two on-disk records as Pydantic v2 models:

- `Snapshot`: one captured payload plus its capture timestamp. Immutable;
  identified by a filename derived from `capturedAt` at second resolution.
- `Pointer` : the singleton `metadata.json` record naming the latest Snapshot.

Timestamp format
----------------
We normalize timestamps to UTC and serialize as ISO-8601 strings with a
trailing `"Z"` and millisecond precision, e.g., `"2025-11-12T02:02:37.104Z"`.
Naive datetimes read back from disk are assumed to be UTC.

Filename pattern
----------------
`aqi_YYYY_MM_DD_HH_MM_SS.json`, rendered from the UTC capture time.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

SNAPSHOT_PREFIX = "aqi_"


def format_timestamp(moment: datetime) -> str:
    """Render `moment` as a UTC ISO-8601 string with millisecond precision."""
    moment = _as_utc(moment)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def snapshot_filename(captured_at: datetime) -> str:
    """Return the snapshot filename for a capture taken at `captured_at`."""
    return f"{SNAPSHOT_PREFIX}{_as_utc(captured_at).strftime('%Y_%m_%d_%H_%M_%S')}.json"


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    captured_at: datetime = Field(alias="capturedAt", description="UTC capture time")

    @field_validator("captured_at")
    @classmethod
    def _normalize_tz(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @field_serializer("captured_at")
    def _serialize_ts(self, v: datetime) -> str:
        return format_timestamp(v)

    def to_document(self) -> dict[str, Any]:
        """Return the JSON-safe document written to disk (camelCase keys)."""
        return self.model_dump(mode="json", by_alias=True)


class Snapshot(_Record):
    """Immutable captured payload."""

    data: Any = Field(description="Opaque JSON value returned by the target API")

    @property
    def filename(self) -> str:
        return snapshot_filename(self.captured_at)


class Pointer(_Record):
    """Singleton record naming the current Snapshot."""

    filename: str = Field(min_length=1, description="Bare snapshot file name")

    @field_validator("filename")
    @classmethod
    def _bare_name(cls, v: str) -> str:
        """Reject anything that would resolve outside the data directory."""
        if "/" in v or "\\" in v or v in {".", ".."}:
            raise ValueError("filename must not contain path components")
        return v

    @classmethod
    def for_snapshot(cls, snapshot: Snapshot) -> Pointer:
        return cls(captured_at=snapshot.captured_at, filename=snapshot.filename)


__all__ = ["Pointer", "Snapshot", "format_timestamp", "snapshot_filename"]
