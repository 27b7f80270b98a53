"""Error taxonomy for the capture pipeline.

Two families live here:

- **Capture errors** are expected outcomes of a browser session. They are
  values (`CaptureError`) carried inside a `Result`, never raised.
- **Store errors** are exceptions raised by the snapshot store. The
  orchestrator recovers `PersistenceError`; the read API turns
  `CorruptPointerError` into a "data missing" response.

A throttled attempt is not an error at all and has no type here.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class CaptureErrorKind(StrEnum):
    NAVIGATION = "navigation"
    TIMEOUT = "timeout"
    MALFORMED_PAYLOAD = "malformed_payload"


@dataclass(frozen=True, slots=True)
class CaptureError:
    """Why a browser capture session produced no payload."""

    kind: CaptureErrorKind
    message: str

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class AqiSnapError(Exception):
    """Base class for exceptions raised by aqisnap."""


class PersistenceError(AqiSnapError):
    """A snapshot or pointer could not be written to disk."""


class CorruptPointerError(AqiSnapError):
    """The pointer is unreadable or names a snapshot that is missing or invalid."""


__all__ = [
    "AqiSnapError",
    "CaptureError",
    "CaptureErrorKind",
    "CorruptPointerError",
    "PersistenceError",
]
