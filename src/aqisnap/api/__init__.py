"""HTTP read API for the latest snapshot."""

from __future__ import annotations
