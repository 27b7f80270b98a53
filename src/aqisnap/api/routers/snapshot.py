"""
API Routes for the latest snapshot.

Endpoints
---------
- `GET /`: Plain-text liveness banner.
- `GET /api/get-aqi-data`: The current snapshot plus a request-time `currentTime`.

Design Decisions
----------------
- **Read-only**: these handlers only read local files. They never trigger or
  wait on a capture.
- **Sync handlers**: declared with `def`, so FastAPI runs the file reads in its
  threadpool instead of on the event loop the scheduler shares.
- **Explicit states**: no pointer yet -> 503; pointer corrupt or naming a
  missing file -> 404.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse

from aqisnap.core.contracts.snapshot import format_timestamp
from aqisnap.core.errors import CorruptPointerError
from aqisnap.core.settings import get_logger
from aqisnap.store.snapshot_store import SnapshotStore

logger = get_logger("aqisnap.api")

router = APIRouter(tags=["Snapshot"])


def _store(request: Request) -> SnapshotStore:
    return request.app.state.store


@router.get("/", response_class=PlainTextResponse, summary="Liveness banner")
def root() -> str:
    return "India AQI Backend is running."


@router.get(
    "/api/get-aqi-data",
    summary="Get the latest captured snapshot",
    responses={
        status.HTTP_404_NOT_FOUND: {"description": "Pointer references missing data"},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"description": "No snapshot captured yet"},
    },
)
def get_aqi_data(request: Request) -> Any:
    """
    Return the current snapshot document.

    Returns
    -------
    dict
        ``capturedAt`` and ``data`` as stored, plus ``currentTime``.
    """
    store = _store(request)
    try:
        pointer = store.current_pointer()
        if pointer is None:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"error": "Data not available yet. Server is fetching initial data."},
            )
        document = store.read(pointer.filename)
    except CorruptPointerError as exc:
        logger.error("[Error] %s", exc)
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": "Data file missing."},
        )

    return {**document, "currentTime": format_timestamp(datetime.now(UTC))}


__all__ = ["router"]
