"""aqisnap package bootstrap.

Captures the latest air-quality ranking payload from a rendered web page and
serves it over a small read-only HTTP API.
"""

from __future__ import annotations

__all__ = ["__version__"]
__version__ = "0.1.0"
