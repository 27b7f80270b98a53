"""Shared fixtures: temp snapshot stores and a simulated Playwright page.

The fake page mimics the small slice of the Playwright async API the capture
session touches: `page.on("response", ...)`, `page.remove_listener(...)`,
`page.goto(...)`, `response.url`, `response.request.method` and
`await response.text()`.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import pytest

from aqisnap.store.snapshot_store import SnapshotStore


class FakeRequest:
    def __init__(self, method: str) -> None:
        self.method = method


class FakeResponse:
    def __init__(self, url: str, body: Any, method: str = "GET") -> None:
        self.url = url
        self.request = FakeRequest(method)
        self._body = body

    async def text(self) -> str:
        return self._body if isinstance(self._body, str) else json.dumps(self._body)


class FakePage:
    """Emit scripted `(delay, response)` events once navigation starts."""

    def __init__(
        self,
        responses: list[tuple[float, FakeResponse]] | None = None,
        *,
        goto_error: Exception | None = None,
        sticky_listeners: bool = False,
    ) -> None:
        self.responses = responses or []
        self.goto_error = goto_error
        self.sticky_listeners = sticky_listeners
        self.handlers: list[Callable[[Any], Any]] = []
        self.handlers_at_goto: int | None = None
        self.goto_calls: list[dict[str, Any]] = []
        self.delivered = 0
        self._emitter: asyncio.Task[None] | None = None

    def on(self, event: str, handler: Callable[[Any], Any]) -> None:
        assert event == "response"
        self.handlers.append(handler)

    def remove_listener(self, event: str, handler: Callable[[Any], Any]) -> None:
        if not self.sticky_listeners:
            self.handlers.remove(handler)

    async def goto(self, url: str, wait_until: str | None = None, timeout: float | None = None) -> None:
        self.handlers_at_goto = len(self.handlers)
        self.goto_calls.append({"url": url, "wait_until": wait_until, "timeout": timeout})
        self._emitter = asyncio.create_task(self._emit())
        if self.goto_error is not None:
            raise self.goto_error

    async def _emit(self) -> None:
        for delay, response in self.responses:
            await asyncio.sleep(delay)
            for handler in list(self.handlers):
                await handler(response)
                self.delivered += 1


class FakeLauncher:
    """Stand-in for `chromium_page`: counts opens and closes."""

    def __init__(self, page: FakePage) -> None:
        self.page = page
        self.opened = 0
        self.closed = 0

    def __call__(self) -> Any:
        return self._session()

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[FakePage]:
        self.opened += 1
        try:
            yield self.page
        finally:
            self.closed += 1


@pytest.fixture  # type: ignore[misc]
def store(tmp_path: Path) -> SnapshotStore:
    """A snapshot store rooted in a fresh temp directory."""
    return SnapshotStore(tmp_path / "data")


@pytest.fixture  # type: ignore[misc]
def make_page() -> Callable[..., FakePage]:
    return FakePage


@pytest.fixture  # type: ignore[misc]
def make_response() -> Callable[..., FakeResponse]:
    return FakeResponse


@pytest.fixture  # type: ignore[misc]
def make_launcher() -> Callable[[FakePage], FakeLauncher]:
    return FakeLauncher
