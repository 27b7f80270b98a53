"""
FastAPI Application Factory & Configuration.

This module initializes the FastAPI application instance. It is responsible for:
1.  **Middleware Setup**: CORS restricted to the configured origins.
2.  **Exception Handling**: A global handler so all errors return structured JSON.
3.  **Routing**: Mounting the snapshot read router and the health check.
4.  **Lifecycle**: Opening the snapshot store and starting/stopping the capture
    scheduler alongside the server.

Design Pattern
--------------
We use an **Application Factory** pattern (`create_app`). This allows for:
-   Easy testing (separate app instances and data directories per test).
-   Configuration injection (tests pass their own `Settings`).

The scheduler runs captures in their own asyncio tasks, so a slow or stuck
browser never blocks the read endpoint.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from aqisnap import __version__
from aqisnap.api.routers import snapshot
from aqisnap.capture.orchestrator import CaptureOrchestrator
from aqisnap.capture.scheduler import CaptureScheduler
from aqisnap.core.settings import Settings, get_logger, load_settings
from aqisnap.store.snapshot_store import SnapshotStore

logger = get_logger("aqisnap.api")


def create_app(
    cfg: Settings | None = None,
    *,
    orchestrator: CaptureOrchestrator | None = None,
) -> FastAPI:
    """
    Construct and configure the aqisnap FastAPI application.

    Parameters
    ----------
    cfg:
        Settings to use; defaults to the cached process settings.
    orchestrator:
        Optional pre-built orchestrator (tests inject one with a fake browser).

    Returns
    -------
    FastAPI
        The configured ASGI application ready to be served by Uvicorn.
    """
    cfg = cfg or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        ASGI Lifespan context manager.

        - **Startup**: start the capture scheduler (first attempt runs now).
        - **Shutdown**: stop the scheduler, tearing down any open browser.
        """
        logger.info("Starting up, data dir: %s", app.state.store.base_dir)
        scheduler: CaptureScheduler | None = None
        if cfg.scheduler_enabled:
            orch = orchestrator or CaptureOrchestrator.from_settings(cfg, app.state.store)
            scheduler = CaptureScheduler(orch, cfg.throttle_window)
            scheduler.start()
        app.state.scheduler = scheduler

        yield

        logger.info("Shutting down...")
        if scheduler is not None:
            await scheduler.stop()

    app = FastAPI(
        title="aqisnap API",
        description="Latest captured air-quality ranking snapshot",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = cfg
    app.state.store = SnapshotStore(cfg.data_dir)
    app.state.scheduler = None

    # -----------------------------------------------------------------------
    # Middleware
    # -----------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------------
    # Global Exception Handlers
    # -----------------------------------------------------------------------
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all handler so unhandled exceptions return structured JSON."""
        logger.exception("Error serving %s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal Server Error",
                "detail": str(exc),
                "path": request.url.path,
            },
        )

    # -----------------------------------------------------------------------
    # Routes
    # -----------------------------------------------------------------------
    app.include_router(snapshot.router)

    @app.get("/health", tags=["System"])
    async def health_check() -> dict[str, str]:
        """Simple liveness check."""
        return {"status": "ok", "version": __version__, "environment": cfg.environment}

    return app


__all__ = ["create_app"]
