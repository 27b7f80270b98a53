"""Capture pipeline: throttle guard, browser session, orchestrator, scheduler."""

from __future__ import annotations

from .browser import ApiResponseMatcher, BrowserCaptureSession, CaptureState
from .orchestrator import AttemptOutcome, AttemptStatus, CaptureOrchestrator
from .scheduler import CaptureScheduler
from .throttle import ThrottleDecision, ThrottleGuard, allowed, remaining

__all__ = [
    "ApiResponseMatcher",
    "AttemptOutcome",
    "AttemptStatus",
    "BrowserCaptureSession",
    "CaptureOrchestrator",
    "CaptureScheduler",
    "CaptureState",
    "ThrottleDecision",
    "ThrottleGuard",
    "allowed",
    "remaining",
]
