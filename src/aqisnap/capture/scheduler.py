"""
Capture Scheduler.

A dumb periodic trigger: run the orchestrator once at `start()`, then once per
period. It does no throttling of its own; the orchestrator's Throttle Guard
owns "at most once per window".

Overlap policy
--------------
Each tick launches the orchestrator as its own supervised asyncio task. If
the previous run is still open when a tick arrives, the tick is skipped (not
queued). A failing run is logged and the loop keeps ticking.
"""

from __future__ import annotations

import asyncio
import contextlib
from datetime import timedelta

from aqisnap.capture.orchestrator import AttemptOutcome, CaptureOrchestrator
from aqisnap.core.settings import get_logger

logger = get_logger("aqisnap.scheduler")


class CaptureScheduler:
    """Own the process-wide capture timer with an explicit start/stop lifecycle."""

    def __init__(self, orchestrator: CaptureOrchestrator, period: timedelta) -> None:
        if period <= timedelta(0):
            raise ValueError("Scheduler period must be positive")
        self.orchestrator = orchestrator
        self.period = period
        self._lock = asyncio.Lock()
        self._loop_task: asyncio.Task[None] | None = None
        self._run_task: asyncio.Task[AttemptOutcome | None] | None = None
        self.skipped_ticks = 0

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def start(self) -> None:
        """Start ticking; the first tick fires immediately."""
        if self.running:
            return
        logger.info("[Scheduler] Starting, period=%s", self.period)
        self._loop_task = asyncio.create_task(self._loop(), name="aqisnap-scheduler")

    async def stop(self) -> None:
        """Cancel the timer and any in-flight run, then wait for both to exit."""
        for task in (self._loop_task, self._run_task):
            if task is not None and not task.done():
                task.cancel()
        for task in (self._loop_task, self._run_task):
            if task is not None:
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._loop_task = None
        self._run_task = None
        logger.info("[Scheduler] Stopped")

    def trigger(self) -> asyncio.Task[AttemptOutcome | None] | None:
        """Launch one run unless a previous run is still in flight."""
        if self.busy or (self._run_task is not None and not self._run_task.done()):
            self.skipped_ticks += 1
            logger.info("[Scheduler] Previous capture still running, skipping tick")
            return None
        self._run_task = asyncio.create_task(self.run_guarded(), name="aqisnap-capture")
        return self._run_task

    async def run_guarded(self) -> AttemptOutcome | None:
        """Run the orchestrator once; never raises except on cancellation."""
        if self.busy:
            self.skipped_ticks += 1
            return None
        async with self._lock:
            logger.info("[Scheduler] Triggering capture attempt")
            try:
                outcome = await self.orchestrator.run_once()
            except Exception:
                logger.exception("[Scheduler Error] Capture attempt crashed")
                return None
            logger.info("[Scheduler] Attempt finished: %s", outcome.status.value)
            return outcome

    async def _loop(self) -> None:
        interval = self.period.total_seconds()
        while True:
            self.trigger()
            await asyncio.sleep(interval)


__all__ = ["CaptureScheduler"]
