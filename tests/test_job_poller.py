from __future__ import annotations

import asyncio
from typing import Any

import pytest

from video_research.services.errors import ProviderRunError, ProviderTimeoutError
from video_research.services.job_poller import ApifyRunPoller


class _StatusSequence:
    def __init__(self, statuses: list[str | None]) -> None:
        self._statuses = statuses
        self.calls = 0

    async def get_run(self, run_id: str) -> dict[str, Any]:
        status = self._statuses[min(self.calls, len(self._statuses) - 1)]
        self.calls += 1
        return {"id": run_id, "status": status}


class _RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def test_poller_returns_run_once_it_succeeds() -> None:
    source = _StatusSequence(["RUNNING", "running", "SUCCEEDED"])
    sleep = _RecordingSleep()
    poller = ApifyRunPoller(source, poll_interval_seconds=2.0, max_attempts=10, sleep=sleep)

    run = asyncio.run(poller.await_completion("run-42"))

    assert run == {"id": "run-42", "status": "SUCCEEDED"}
    assert source.calls == 3
    assert sleep.delays == [2.0, 2.0]


def test_poller_times_out_after_max_attempts() -> None:
    source = _StatusSequence(["RUNNING"])
    sleep = _RecordingSleep()
    poller = ApifyRunPoller(source, poll_interval_seconds=0.5, max_attempts=4, sleep=sleep)

    with pytest.raises(ProviderTimeoutError, match="timeout"):
        asyncio.run(poller.await_completion("run-slow"))

    assert source.calls == 4


@pytest.mark.parametrize("terminal_status", ["FAILED", "ABORTED", "timed-out"])
def test_poller_raises_on_failure_status_without_sleeping(terminal_status: str) -> None:
    source = _StatusSequence([terminal_status])
    sleep = _RecordingSleep()
    poller = ApifyRunPoller(source, max_attempts=5, sleep=sleep)

    with pytest.raises(ProviderRunError) as exc_info:
        asyncio.run(poller.await_completion("run-bad"))

    assert exc_info.value.state == terminal_status.upper()
    assert str(exc_info.value) == f"Apify run {terminal_status.lower()}"
    assert source.calls == 1
    assert sleep.delays == []


def test_poller_keeps_waiting_on_missing_status() -> None:
    source = _StatusSequence([None, "READY", "SUCCEEDED"])
    poller = ApifyRunPoller(source, max_attempts=5, sleep=_RecordingSleep())

    run = asyncio.run(poller.await_completion("run-7"))

    assert run["status"] == "SUCCEEDED"
    assert source.calls == 3
