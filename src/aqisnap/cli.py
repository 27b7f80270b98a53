# src/aqisnap/cli.py
"""
aqisnap Command Line Interface (CLI).

This module implements the operator-facing terminal interface using `typer`
and `rich`.

Commands
--------
- **fetch**: Run one capture attempt out-of-band (throttle still applies).
- **status**: Show the current pointer, its age and the next allowed capture.
- **serve**: Run the read API and the capture scheduler under Uvicorn.

Usage
-----
    $ aqisnap fetch
    $ aqisnap status --data-dir data/
    $ aqisnap serve --port 3000
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
import uvicorn
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from aqisnap.capture.orchestrator import AttemptStatus, CaptureOrchestrator, utc_now
from aqisnap.capture.throttle import ThrottleGuard
from aqisnap.core.contracts.snapshot import format_timestamp
from aqisnap.core.settings import Settings, load_settings
from aqisnap.store.snapshot_store import SnapshotStore

# Ensure env vars (like TARGET_URL) are loaded before any logic runs
load_dotenv()

app = typer.Typer(
    help="aqisnap: capture the latest AQI ranking snapshot and serve it.",
    rich_markup_mode="markdown",
)
console = Console()


DataDirOption = Annotated[
    Path | None,
    typer.Option(
        "--data-dir",
        "-d",
        help="Directory holding metadata.json and snapshots (defaults to DATA_DIR).",
    ),
]


def _settings(data_dir: Path | None) -> Settings:
    cfg = load_settings()
    if data_dir is not None:
        cfg = cfg.model_copy(update={"data_dir": data_dir})
    return cfg


# --------------------------------------------------------------------------- #
# Commands
# --------------------------------------------------------------------------- #


@app.command()  # type: ignore[misc]
def fetch(data_dir: DataDirOption = None) -> None:
    """
    Run one capture attempt now.

    Skips quietly when the last capture is younger than the throttle window.
    Exits with code 1 when the attempt fails.
    """
    cfg = _settings(data_dir)
    orchestrator = CaptureOrchestrator.from_settings(cfg)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(f"[cyan]Waiting for API request: {cfg.api_pattern}...", total=None)
        outcome = asyncio.run(orchestrator.run_once())

    if outcome.status is AttemptStatus.SKIPPED:
        minutes = int(outcome.remaining.total_seconds() // 60) if outcome.remaining else 0
        console.print(
            f"[yellow]⏭ Skipped:[/yellow] next run allowed in approx {minutes} minutes."
        )
        return

    if outcome.status is AttemptStatus.FAILED:
        console.print(f"[bold red]❌ Failed:[/bold red] {outcome.reason}")
        raise typer.Exit(code=1)

    if outcome.snapshot is None:
        console.print("[bold red]❌ Failed:[/bold red] capture reported success without a snapshot")
        raise typer.Exit(code=1)

    console.print(
        Panel(
            f"Snapshot: {outcome.snapshot.filename}\nDirectory: {cfg.data_dir}",
            title="✅ Captured",
            border_style="green",
        )
    )


@app.command()  # type: ignore[misc]
def status(data_dir: DataDirOption = None) -> None:
    """Show the current pointer and when the next capture is allowed."""
    cfg = _settings(data_dir)
    store = SnapshotStore(cfg.data_dir)
    decision = ThrottleGuard(store, cfg.throttle_window).decide(utc_now())

    if decision.pointer is None:
        console.print("[yellow]No usable snapshot yet.[/yellow] Next capture allowed now.")
        return

    table = Table(show_header=False, box=None)
    table.add_row("Snapshot", decision.pointer.filename)
    table.add_row("Captured at", format_timestamp(decision.pointer.captured_at))
    table.add_row(
        "Next capture",
        "allowed now" if decision.allowed else f"in approx {decision.minutes_left} minutes",
    )
    console.print(Panel(table, title="aqisnap status", border_style="cyan"))


@app.command()  # type: ignore[misc]
def serve(
    host: Annotated[str | None, typer.Option("--host", help="Bind address.")] = None,
    port: Annotated[int | None, typer.Option("--port", "-p", help="Listening port.")] = None,
) -> None:
    """Run the read API together with the capture scheduler."""
    cfg = load_settings()
    uvicorn.run(
        "aqisnap.api.server:app",
        host=host or cfg.host,
        port=port or cfg.port,
        log_level=cfg.log_level.lower(),
    )


if __name__ == "__main__":
    app()
