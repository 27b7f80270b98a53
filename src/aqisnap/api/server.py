"""
ASGI Entry Point for the aqisnap API.

This module exposes the `app` object required by ASGI servers (Uvicorn/Gunicorn).
It proactively loads environment variables from `.env` to ensure that configuration
is available before the application factory or the settings module reads them.

Usage
-----
Run via the module entry point:
    $ python -m aqisnap.api.server

Or via uvicorn directly:
    $ uvicorn aqisnap.api.server:app
"""

from pathlib import Path

import uvicorn
from dotenv import load_dotenv

# Load environment variables from .env BEFORE importing the application factory.
load_dotenv(dotenv_path=Path(".env"))

from aqisnap.api.app import create_app  # noqa: E402
from aqisnap.core.settings import get_logger, load_settings  # noqa: E402

# Factory invocation
app = create_app()


def main() -> None:
    """Run the API server (and its capture scheduler)."""
    cfg = load_settings()
    logger = get_logger("aqisnap.server")
    logger.info("Server running at http://%s:%d", cfg.host, cfg.port)
    logger.info("Target: %s (pattern %r)", cfg.target_url, cfg.api_pattern)

    uvicorn.run(
        "aqisnap.api.server:app",
        host=cfg.host,
        port=cfg.port,
        log_level=cfg.log_level.lower(),
    )


if __name__ == "__main__":
    main()
