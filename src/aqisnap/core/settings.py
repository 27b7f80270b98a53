"""Centralized application configuration using Pydantic Settings (v2).

This module exposes a single, cached `settings` instance that reads from:
- Real environment variables (highest precedence)
- `.env` files at the repository root: .env, .env.local, .env.dev/.env.test/.env.prod
"""

from __future__ import annotations

import logging
import os
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["dev", "test", "prod"]
LogLevelName = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_TARGET_URL = "https://www.aqi.in/in/real-time-most-polluted-city-ranking"
DEFAULT_API_PATTERN = "getAirQualityRanklistCountryAndCity"


class Settings(BaseSettings):
    """Typed application configuration loaded from env and `.env` files.

    Attributes
    ----------
    environment : EnvName
        Runtime environment flag; maps from `AQISNAP_ENV`.
    log_level : LogLevelName
        Global log level string; maps from `LOG_LEVEL`.
    target_url : str
        Page rendered by the headless browser; maps from `TARGET_URL`.
    api_pattern : str
        URL fragment identifying the API response to capture; maps from `API_PATTERN`.
    throttle_window_hours : float
        Minimum spacing between successful captures; maps from `THROTTLE_WINDOW_HOURS`.
    capture_timeout_seconds : float
        Deadline for the matching response to arrive; maps from `CAPTURE_TIMEOUT_SECONDS`.
    data_dir : Path
        Directory holding `metadata.json` and the snapshot files; maps from `DATA_DIR`.
    cors_origin : str
        Comma-separated list of allowed cross-origin callers; maps from `CORS_ORIGIN`.
    """

    environment: EnvName = Field(default="dev", alias="AQISNAP_ENV")
    log_level: LogLevelName = Field(default="INFO", alias="LOG_LEVEL")

    target_url: str = Field(default=DEFAULT_TARGET_URL, alias="TARGET_URL")
    api_pattern: str = Field(default=DEFAULT_API_PATTERN, alias="API_PATTERN")
    throttle_window_hours: float = Field(default=6.0, gt=0, alias="THROTTLE_WINDOW_HOURS")
    capture_timeout_seconds: float = Field(default=30.0, gt=0, alias="CAPTURE_TIMEOUT_SECONDS")
    data_dir: Path = Field(default=Path("data"), alias="DATA_DIR")

    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")
    cors_origin: str = Field(default="*", alias="CORS_ORIGIN")

    scheduler_enabled: bool = Field(default=True, alias="SCHEDULER_ENABLED")
    browser_headless: bool = Field(default=True, alias="BROWSER_HEADLESS")

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local", ".env.dev", ".env.test", ".env.prod"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def is_dev(self) -> bool:
        """Return True if running in the development environment."""
        return self.environment == "dev"

    @property
    def is_test(self) -> bool:
        """Return True if running in the test environment."""
        return self.environment == "test"

    @property
    def is_prod(self) -> bool:
        """Return True if running in the production environment."""
        return self.environment == "prod"

    @property
    def throttle_window(self) -> timedelta:
        return timedelta(hours=self.throttle_window_hours)

    @property
    def cors_origins(self) -> list[str]:
        """Split `cors_origin` into the list expected by CORSMiddleware."""
        origins = [item.strip() for item in self.cors_origin.split(",")]
        return [item for item in origins if item] or ["*"]

    def log_level_numeric(self) -> int:
        """Return the numeric logging level corresponding to `self.log_level`."""
        return getattr(logging, self.log_level, logging.INFO)


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Create and cache a `Settings` instance.

    We keep this behind an LRU cache so tests can force a rebuild via
    `load_settings.cache_clear()` after mutating `os.environ`.
    """
    os.environ.setdefault("AQISNAP_ENV", "dev")
    return Settings()


# Export a ready-to-use singleton (import-time read of env / .env files).
settings: Settings = load_settings()


def get_logger(name: str = "aqisnap") -> logging.Logger:
    """Return a process-global logger configured to `settings.log_level`.

    Child loggers (``aqisnap.capture`` etc.) propagate to the ``aqisnap``
    root, which owns the single stream handler.
    """
    root = logging.getLogger("aqisnap")
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        )
        root.addHandler(handler)
        root.propagate = False
    root.setLevel(settings.log_level_numeric())
    return logging.getLogger(name)
