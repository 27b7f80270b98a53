"""Throttle Guard: at most one successful capture per window.

`allowed` and `remaining` are pure functions over (pointer, now, window).
`ThrottleGuard` wraps them with a store read and the fail-open policy: a
pointer that cannot be read, that names a snapshot which is gone or no
longer valid, or that claims a capture time in the future must not wedge
the system, so it is logged and treated as "no pointer".
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from aqisnap.core.contracts.snapshot import Pointer
from aqisnap.core.errors import CorruptPointerError
from aqisnap.core.settings import get_logger
from aqisnap.store.snapshot_store import SnapshotStore

logger = get_logger("aqisnap.throttle")

_ZERO = timedelta(0)


def allowed(pointer: Pointer | None, now: datetime, window: timedelta) -> bool:
    """Return True if a capture may run at `now`."""
    if pointer is None:
        return True
    return now - pointer.captured_at >= window


def remaining(pointer: Pointer | None, now: datetime, window: timedelta) -> timedelta:
    """Return how long until a capture is allowed (zero if it already is)."""
    if pointer is None:
        return _ZERO
    return max(window - (now - pointer.captured_at), _ZERO)


@dataclass(frozen=True, slots=True)
class ThrottleDecision:
    allowed: bool
    remaining: timedelta
    pointer: Pointer | None

    @property
    def minutes_left(self) -> int:
        """Whole minutes until the next capture; informational only."""
        return int(self.remaining.total_seconds() // 60)


class ThrottleGuard:
    """Decide from the store's pointer whether a capture may start."""

    def __init__(self, store: SnapshotStore, window: timedelta) -> None:
        self.store = store
        self.window = window

    def decide(self, now: datetime) -> ThrottleDecision:
        pointer = self._read_pointer(now)
        return ThrottleDecision(
            allowed=allowed(pointer, now, self.window),
            remaining=remaining(pointer, now, self.window),
            pointer=pointer,
        )

    def _read_pointer(self, now: datetime) -> Pointer | None:
        try:
            pointer = self.store.current_pointer()
            if pointer is not None:
                self.store.read(pointer.filename)
        except CorruptPointerError as exc:
            logger.warning("Pointer corrupted or unreadable, proceeding with capture: %s", exc)
            return None
        if pointer is not None and pointer.captured_at > now:
            logger.warning(
                "Pointer capturedAt %s is in the future, proceeding with capture",
                pointer.captured_at.isoformat(),
            )
            return None
        return pointer


__all__ = ["ThrottleDecision", "ThrottleGuard", "allowed", "remaining"]
