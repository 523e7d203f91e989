from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from video_research.dependencies import reset_cached_dependencies
from video_research.main import create_app
from video_research.models.dashboard_settings import DashboardSettings
from video_research.models.records import JobHandle


class FakeRunClient:
    """In-memory stand-in for the Apify run endpoints."""

    def __init__(
        self,
        items: list[dict[str, Any]],
        *,
        statuses: list[str] | None = None,
        run_id: str = "run-1",
        dataset_id: str = "dataset-1",
    ) -> None:
        self.items = items
        self.statuses = list(statuses or ["SUCCEEDED"])
        self.handle = JobHandle(run_id=run_id, dataset_id=dataset_id)
        self.started: list[tuple[str, dict[str, Any]]] = []
        self.status_calls = 0
        self.fetched: list[str] = []

    async def start_run(self, actor_id: str, run_input: dict[str, Any]) -> JobHandle:
        self.started.append((actor_id, run_input))
        return self.handle

    async def get_run(self, run_id: str) -> dict[str, Any]:
        index = min(self.status_calls, len(self.statuses) - 1)
        self.status_calls += 1
        return {"id": run_id, "status": self.statuses[index]}

    async def fetch_dataset_items(self, dataset_id: str) -> list[dict[str, Any]]:
        self.fetched.append(dataset_id)
        return self.items


class ImmediatePoller:
    def __init__(self) -> None:
        self.run_ids: list[str] = []

    async def await_completion(self, run_id: str) -> dict[str, Any]:
        self.run_ids.append(run_id)
        return {"id": run_id, "status": "SUCCEEDED"}


@pytest.fixture
def full_dashboard_settings() -> DashboardSettings:
    return DashboardSettings(
        tiktok_api_token="tt-token",
        instagram_api_token="ig-token",
        youtube_api_token="yt-token",
        transcribe_token="gt-token",
    )


@pytest.fixture
def runtime_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    data_dir = tmp_path / "runtime-data"
    data_dir.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("VIDEO_RESEARCH_DATA_DIR", str(data_dir))
    monkeypatch.setenv("VIDEO_RESEARCH_TELEMETRY_SINK", "none")
    monkeypatch.setenv("VIDEO_RESEARCH_APIFY_POLL_INTERVAL_SECONDS", "0")
    reset_cached_dependencies()
    yield data_dir
    reset_cached_dependencies()


@pytest.fixture
def client(runtime_env: Path) -> Iterator[TestClient]:
    _ = runtime_env
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client
