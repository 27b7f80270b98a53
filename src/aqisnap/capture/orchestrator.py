"""
Capture Orchestrator: one full capture attempt.

Flow
----
1. Ask the Throttle Guard (which reads the current pointer).
2. If throttled, return ``SKIPPED`` with the remaining wait.
3. Otherwise run a Browser Capture Session against the target URL.
4. On success, stamp a new Snapshot with ``now()`` and publish it.
5. On any failure, return ``FAILED``; persisted state is left untouched.

The orchestrator never raises for expected failures. Throttling lives here
(not in the scheduler) so out-of-band runs such as ``aqisnap fetch`` are just
as safe as scheduled ones.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any, Protocol

from aqisnap.capture.browser import (
    ApiResponseMatcher,
    BrowserCaptureSession,
    ResponsePredicate,
    chromium_page,
)
from aqisnap.capture.throttle import ThrottleGuard
from aqisnap.core.contracts.snapshot import Snapshot
from aqisnap.core.errors import CaptureError, PersistenceError
from aqisnap.core.result import Result
from aqisnap.core.settings import Settings, get_logger
from aqisnap.store.snapshot_store import SnapshotStore

logger = get_logger("aqisnap.orchestrator")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class CaptureSession(Protocol):
    async def capture(
        self,
        target_url: str,
        predicate: ResponsePredicate,
        timeout: float | None = None,
    ) -> Result[Any, CaptureError]: ...


class AttemptStatus(StrEnum):
    SKIPPED = "skipped"
    CAPTURED = "captured"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class AttemptOutcome:
    """Result of one capture attempt; never persisted."""

    status: AttemptStatus
    snapshot: Snapshot | None = None
    reason: str | None = None
    remaining: timedelta | None = None

    @classmethod
    def skipped(cls, remaining: timedelta) -> AttemptOutcome:
        return cls(AttemptStatus.SKIPPED, remaining=remaining)

    @classmethod
    def captured(cls, snapshot: Snapshot) -> AttemptOutcome:
        return cls(AttemptStatus.CAPTURED, snapshot=snapshot)

    @classmethod
    def failed(cls, reason: str) -> AttemptOutcome:
        return cls(AttemptStatus.FAILED, reason=reason)


class CaptureOrchestrator:
    """Compose Throttle Guard, Browser Capture Session and Snapshot Store."""

    def __init__(
        self,
        store: SnapshotStore,
        session: CaptureSession,
        *,
        target_url: str,
        predicate: ResponsePredicate,
        window: timedelta,
        timeout: float | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.store = store
        self.session = session
        self.guard = ThrottleGuard(store, window)
        self.target_url = target_url
        self.predicate = predicate
        self.timeout = timeout
        self.clock = clock

    @classmethod
    def from_settings(cls, cfg: Settings, store: SnapshotStore | None = None) -> CaptureOrchestrator:
        """Build the production wiring (real Chromium) from `cfg`."""
        session = BrowserCaptureSession(
            lambda: chromium_page(headless=cfg.browser_headless),
            timeout=cfg.capture_timeout_seconds,
        )
        return cls(
            store or SnapshotStore(cfg.data_dir),
            session,
            target_url=cfg.target_url,
            predicate=ApiResponseMatcher(cfg.api_pattern),
            window=cfg.throttle_window,
            timeout=cfg.capture_timeout_seconds,
        )

    async def run_once(self) -> AttemptOutcome:
        decision = self.guard.decide(self.clock())
        if not decision.allowed:
            logger.info(
                "[Skipped] Last capture was less than %s ago. Next run allowed in approx %d minutes.",
                self.guard.window,
                decision.minutes_left,
            )
            return AttemptOutcome.skipped(decision.remaining)

        result = await self.session.capture(self.target_url, self.predicate, self.timeout)
        if result.is_err():
            error = result.unwrap_err()
            logger.warning("[Failed] Capture attempt failed: %s", error)
            return AttemptOutcome.failed(str(error))

        snapshot = Snapshot(captured_at=self.clock(), data=result.unwrap())
        try:
            # File writes and fsync run off the event loop.
            await asyncio.to_thread(self.store.publish, snapshot)
        except PersistenceError as exc:
            logger.error("[Failed] Could not persist snapshot: %s", exc)
            return AttemptOutcome.failed(f"persistence: {exc}")

        logger.info("[Success] Snapshot %s published", snapshot.filename)
        return AttemptOutcome.captured(snapshot)


__all__ = [
    "AttemptOutcome",
    "AttemptStatus",
    "CaptureOrchestrator",
    "CaptureSession",
    "utc_now",
]
