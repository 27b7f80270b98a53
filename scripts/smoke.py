# scripts/smoke.py
"""
Live Smoke Test for the browser capture.

Renders the real target page in headless Chromium and prints a summary of the
captured payload. Nothing is written to the snapshot store and the throttle is
not consulted, so this is safe to run next to a live server.

Usage
-----
    $ python scripts/smoke.py
    $ python scripts/smoke.py --url https://www.aqi.in/in/real-time-most-polluted-city-ranking

Dependencies
------------
Chromium must be installed for Playwright:
    $ playwright install chromium
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

from aqisnap.capture.browser import ApiResponseMatcher, BrowserCaptureSession
from aqisnap.core.settings import get_logger, load_settings

env_path = Path(".env")
if env_path.exists():
    load_dotenv(env_path)

logger = get_logger("aqisnap.smoke")


def main() -> None:
    """Execute one capture and report the outcome."""
    cfg = load_settings()
    parser = argparse.ArgumentParser(description="Run an aqisnap live capture smoke test")
    parser.add_argument("--url", default=cfg.target_url, help="Page to render")
    parser.add_argument("--pattern", default=cfg.api_pattern, help="API URL fragment to match")
    parser.add_argument("--timeout", type=float, default=cfg.capture_timeout_seconds)
    args = parser.parse_args()

    session = BrowserCaptureSession(timeout=args.timeout)
    result = asyncio.run(session.capture(args.url, ApiResponseMatcher(args.pattern)))

    if result.is_err():
        logger.error("Smoke capture failed: %s", result.unwrap_err())
        sys.exit(1)

    payload = result.unwrap()
    preview = json.dumps(payload, ensure_ascii=False)[:500]
    logger.info("Captured %d bytes of JSON", len(json.dumps(payload)))
    print(preview)


if __name__ == "__main__":
    main()
