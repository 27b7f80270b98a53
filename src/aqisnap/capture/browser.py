"""
Browser Capture Session.

The target page calls its ranking API from page scripts, so the payload can
only be obtained by rendering the page and observing the network. A session:

1.  Launches one isolated headless Chromium and opens one page.
2.  Registers a response observer **before** navigation starts, so a request
    fired during early script execution is never missed.
3.  Navigates with `wait_until="domcontentloaded"`. The API call may fire
    before or after full load; waiting for `load` would only race against
    slow subresources.
4.  Races a one-shot future (the first matching response) against a
    wall-clock timeout.
5.  Closes the page and browser on every exit path. A teardown that hangs
    is abandoned after `teardown_timeout` so the attempt still returns.

State machine
-------------
INIT -> NAVIGATING -> AWAITING_MATCH -> {CAPTURED | TIMED_OUT | MATCH_ERROR} -> CLOSED

Errors are returned as `Err(CaptureError)`; nothing is retried here.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from enum import StrEnum
from typing import Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, Response, async_playwright

from aqisnap.core.errors import CaptureError, CaptureErrorKind
from aqisnap.core.result import Result, err, ok
from aqisnap.core.settings import get_logger

logger = get_logger("aqisnap.browser")

# Chromium flags: no setuid helper, no /dev/shm (small in containers).
CHROMIUM_ARGS = ["--disable-setuid-sandbox", "--disable-dev-shm-usage"]

# Seconds allowed for closing the browser before the session gives up on it.
TEARDOWN_TIMEOUT = 10.0

PageLauncher = Callable[[], AbstractAsyncContextManager[Any]]
ResponsePredicate = Callable[[Any], bool]


class CaptureState(StrEnum):
    INIT = "init"
    NAVIGATING = "navigating"
    AWAITING_MATCH = "awaiting_match"
    CAPTURED = "captured"
    TIMED_OUT = "timed_out"
    MATCH_ERROR = "match_error"
    CLOSED = "closed"


class ApiResponseMatcher:
    """Select the GET response whose URL contains `fragment`."""

    def __init__(self, fragment: str) -> None:
        if not fragment:
            raise ValueError("API path fragment must not be empty")
        self.fragment = fragment

    def __call__(self, response: Response) -> bool:
        return self.fragment in response.url and response.request.method == "GET"

    def __repr__(self) -> str:
        return f"ApiResponseMatcher({self.fragment!r})"


@asynccontextmanager
async def chromium_page(*, headless: bool = True) -> AsyncIterator[Page]:
    """Yield a page in a fresh headless Chromium; the browser dies on exit."""
    async with async_playwright() as pw:
        browser = await pw.chromium.launch(
            headless=headless,
            chromium_sandbox=False,
            args=CHROMIUM_ARGS,
        )
        try:
            context = await browser.new_context()
            page = await context.new_page()
            yield page
        finally:
            try:
                await asyncio.wait_for(browser.close(), timeout=TEARDOWN_TIMEOUT)
            except TimeoutError:
                logger.warning("Browser did not close within %.0fs, abandoning it", TEARDOWN_TIMEOUT)


class BrowserCaptureSession:
    """Capture the first JSON response matching a predicate.

    Parameters
    ----------
    launcher:
        Zero-argument factory returning an async context manager that yields a
        Playwright-compatible page. Defaults to :func:`chromium_page`.
    timeout:
        Seconds to wait for the matching response before giving up.
    teardown_timeout:
        Seconds allowed for the launcher to close the page and browser. A
        teardown that hangs past this is abandoned with a warning so the
        attempt still returns.
    """

    def __init__(
        self,
        launcher: PageLauncher | None = None,
        *,
        timeout: float = 30.0,
        teardown_timeout: float = TEARDOWN_TIMEOUT,
    ) -> None:
        self._launcher: PageLauncher = launcher or chromium_page
        self.timeout = timeout
        self.teardown_timeout = teardown_timeout
        self.state = CaptureState.INIT
        self.transitions: list[CaptureState] = []

    def _enter(self, state: CaptureState) -> None:
        self.state = state
        self.transitions.append(state)

    async def capture(
        self,
        target_url: str,
        predicate: ResponsePredicate,
        timeout: float | None = None,
    ) -> Result[Any, CaptureError]:
        """Render `target_url` and return the first matching JSON payload."""
        deadline = self.timeout if timeout is None else timeout
        self.transitions = []
        self._enter(CaptureState.INIT)
        try:
            browser = self._launcher()
            page = await browser.__aenter__()
            try:
                return await self._run(page, target_url, predicate, deadline)
            finally:
                await self._close(browser)
        except PlaywrightError as exc:
            # Launch or teardown failed outside the race.
            logger.error("Browser session failed: %s", exc)
            self._enter(CaptureState.MATCH_ERROR)
            return err(CaptureError(CaptureErrorKind.NAVIGATION, str(exc)))
        finally:
            self._enter(CaptureState.CLOSED)

    async def _close(self, browser: AbstractAsyncContextManager[Any]) -> None:
        try:
            await asyncio.wait_for(browser.__aexit__(None, None, None), timeout=self.teardown_timeout)
        except TimeoutError:
            logger.warning("Browser teardown exceeded %.1fs, abandoning it", self.teardown_timeout)

    async def _run(
        self,
        page: Any,
        target_url: str,
        predicate: ResponsePredicate,
        deadline: float,
    ) -> Result[Any, CaptureError]:
        loop = asyncio.get_running_loop()
        matched: asyncio.Future[Result[Any, CaptureError]] = loop.create_future()
        claimed = False

        async def on_response(response: Any) -> None:
            nonlocal claimed
            if claimed or matched.done():
                return
            if not predicate(response):
                return
            # First match wins, even while its body is still being read.
            claimed = True
            logger.info("Captured target API response: %s", response.url)
            outcome = await _read_json(response)
            if not matched.done():
                matched.set_result(outcome)

        def on_navigation_done(task: asyncio.Task[Any]) -> None:
            if task.cancelled() or matched.done():
                return
            exc = task.exception()
            if claimed:
                # A matched body is still being read; it decides the outcome.
                return
            if exc is not None:
                error = CaptureError(CaptureErrorKind.NAVIGATION, f"Failed to load {target_url}: {exc}")
                matched.set_result(err(error))

        page.on("response", on_response)
        self._enter(CaptureState.NAVIGATING)
        logger.info("Waiting for API request matching %s on %s", predicate, target_url)
        # timeout=0: the deadline is enforced by the race below, not by goto.
        navigation = asyncio.create_task(
            page.goto(target_url, wait_until="domcontentloaded", timeout=0)
        )
        navigation.add_done_callback(on_navigation_done)
        self._enter(CaptureState.AWAITING_MATCH)

        try:
            outcome = await asyncio.wait_for(matched, timeout=deadline)
        except TimeoutError:
            self._enter(CaptureState.TIMED_OUT)
            logger.warning("Timeout: API request was not detected within %.0fs", deadline)
            return err(
                CaptureError(
                    CaptureErrorKind.TIMEOUT,
                    f"API request was not detected within {deadline:g}s",
                )
            )
        finally:
            with contextlib.suppress(Exception):
                page.remove_listener("response", on_response)
            if not navigation.done():
                navigation.cancel()
            await asyncio.gather(navigation, return_exceptions=True)

        self._enter(CaptureState.CAPTURED if outcome.is_ok() else CaptureState.MATCH_ERROR)
        return outcome


async def _read_json(response: Any) -> Result[Any, CaptureError]:
    try:
        body = await response.text()
    except PlaywrightError as exc:
        return err(CaptureError(CaptureErrorKind.NAVIGATION, f"Cannot read response body: {exc}"))
    try:
        return ok(json.loads(body))
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse JSON from %s: %s", response.url, exc)
        return err(CaptureError(CaptureErrorKind.MALFORMED_PAYLOAD, str(exc)))


__all__ = [
    "ApiResponseMatcher",
    "BrowserCaptureSession",
    "CaptureState",
    "chromium_page",
]
