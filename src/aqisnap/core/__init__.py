"""Core package initializer for aqisnap.

Settings, logging, error types and the snapshot contracts live here so the
store, capture and API layers can share them without import cycles.
"""

from __future__ import annotations

__all__ = ["__doc__"]
