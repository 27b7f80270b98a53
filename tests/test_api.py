# tests/test_api.py
"""
Integration Tests for the aqisnap HTTP API.

Focus
-----
These tests verify the HTTP contract of the read endpoint against a real
snapshot store in a temp directory. They never launch a browser: the
scheduler is disabled, or fed a stub orchestrator.

Scenarios
---------
1. **Not ready**: no pointer -> 503, and no capture is attempted.
2. **Round trip**: publish -> GET returns the same data plus `currentTime`.
3. **Data missing**: pointer naming a missing or unparseable file, or a corrupt
   pointer -> 404.
4. **Lifespan**: the scheduler starts with the app and stops with it.
"""

from __future__ import annotations

import json
from collections.abc import Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from aqisnap import __version__
from aqisnap.api.app import create_app
from aqisnap.capture.orchestrator import AttemptOutcome
from aqisnap.capture.scheduler import CaptureScheduler
from aqisnap.core.contracts.snapshot import Snapshot
from aqisnap.core.settings import Settings
from aqisnap.store.snapshot_store import SnapshotStore


def _settings(data_dir: Path, *, scheduler: bool = False) -> Settings:
    return Settings(
        AQISNAP_ENV="test",
        DATA_DIR=data_dir,
        SCHEDULER_ENABLED=scheduler,
        CORS_ORIGIN="https://aqi.example.org, https://dash.example.org",
    )


@pytest.fixture  # type: ignore[misc]
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture  # type: ignore[misc]
def client(data_dir: Path) -> Generator[TestClient, None, None]:
    app = create_app(_settings(data_dir))
    with TestClient(app) as c:
        yield c


def test_health_check(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == __version__
    assert data["environment"] == "test"


def test_root_banner(client: TestClient) -> None:
    response = client.get("/")
    assert response.status_code == 200
    assert "running" in response.text


def test_not_ready_without_pointer(client: TestClient, data_dir: Path) -> None:
    """No pointer -> 503; the read path never creates files or captures."""
    response = client.get("/api/get-aqi-data")

    assert response.status_code == 503
    assert "not available" in response.json()["error"]
    assert list(data_dir.iterdir()) == []


def test_round_trip_returns_data_and_current_time(client: TestClient, data_dir: Path) -> None:
    payload = {"status": "success", "data": [{"city": "Delhi", "aqi": 412}]}
    captured_at = datetime.now(UTC) - timedelta(minutes=3)
    SnapshotStore(data_dir).publish(Snapshot(captured_at=captured_at, data=payload))

    response = client.get("/api/get-aqi-data")

    assert response.status_code == 200
    body = response.json()
    assert body["data"] == payload
    assert body["capturedAt"].endswith("Z")
    assert "currentTime" in body
    served_at = datetime.fromisoformat(body["currentTime"])
    assert served_at > datetime.fromisoformat(body["capturedAt"])


def test_missing_snapshot_file_is_reported(client: TestClient, data_dir: Path) -> None:
    pointer = {"capturedAt": "2025-01-15T12:00:00.000Z", "filename": "aqi_2025_01_15_12_00_00.json"}
    (data_dir / "metadata.json").write_text(json.dumps(pointer), encoding="utf-8")

    response = client.get("/api/get-aqi-data")

    assert response.status_code == 404
    assert response.json() == {"error": "Data file missing."}


def test_garbage_snapshot_file_is_reported(client: TestClient, data_dir: Path) -> None:
    pointer = SnapshotStore(data_dir).publish(
        Snapshot(captured_at=datetime(2025, 1, 15, 12, tzinfo=UTC), data={"v": 1})
    )
    (data_dir / pointer.filename).write_text("not json at all", encoding="utf-8")

    response = client.get("/api/get-aqi-data")

    assert response.status_code == 404
    assert response.json() == {"error": "Data file missing."}


def test_corrupt_pointer_is_reported(client: TestClient, data_dir: Path) -> None:
    (data_dir / "metadata.json").write_text("{oops", encoding="utf-8")

    response = client.get("/api/get-aqi-data")

    assert response.status_code == 404


def test_cors_allows_configured_origin(client: TestClient) -> None:
    response = client.get("/health", headers={"Origin": "https://dash.example.org"})
    assert response.headers.get("access-control-allow-origin") == "https://dash.example.org"

    other = client.get("/health", headers={"Origin": "https://evil.example.com"})
    assert "access-control-allow-origin" not in other.headers


class StubOrchestrator:
    def __init__(self) -> None:
        self.calls = 0

    async def run_once(self) -> AttemptOutcome:
        self.calls += 1
        return AttemptOutcome.skipped(timedelta(hours=6))


def test_lifespan_starts_and_stops_scheduler(data_dir: Path) -> None:
    orch = StubOrchestrator()
    app = create_app(_settings(data_dir, scheduler=True), orchestrator=orch)  # type: ignore[arg-type]

    with TestClient(app) as c:
        scheduler = app.state.scheduler
        assert isinstance(scheduler, CaptureScheduler)
        assert scheduler.running
        # The read path keeps answering while the scheduler owns captures.
        assert c.get("/api/get-aqi-data").status_code == 503

    assert not scheduler.running
