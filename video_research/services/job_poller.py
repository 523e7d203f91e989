from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from video_research.services.errors import ProviderRunError, ProviderTimeoutError

LOGGER = logging.getLogger("video_research.apify")

DEFAULT_POLL_INTERVAL_SECONDS = 2.0
DEFAULT_MAX_POLL_ATTEMPTS = 180
PROGRESS_LOG_EVERY_ATTEMPTS = 15
SUCCESS_STATUS = "SUCCEEDED"
FAILURE_STATUSES: frozenset[str] = frozenset({"FAILED", "ABORTED", "TIMED-OUT"})


class RunStatusSource(Protocol):
    async def get_run(self, run_id: str) -> dict[str, Any]:
        ...


class ApifyRunPoller:
    """
    Waits for an actor run to reach a terminal state.

    Suspends on `sleep` between attempts, so several pollers can share one
    event loop without blocking each other.
    """

    def __init__(
        self,
        client: RunStatusSource,
        *,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        max_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._poll_interval_seconds = max(0.0, poll_interval_seconds)
        self._max_attempts = max(1, max_attempts)
        self._sleep = sleep

    async def await_completion(self, run_id: str) -> dict[str, Any]:
        for attempt in range(self._max_attempts):
            run = await self._client.get_run(run_id)
            status = _normalize_status(run.get("status"))

            if attempt > 0 and attempt % PROGRESS_LOG_EVERY_ATTEMPTS == 0:
                LOGGER.info(
                    "apify run waiting run_id=%s status=%s elapsed_seconds=%s",
                    run_id,
                    status,
                    int(attempt * self._poll_interval_seconds),
                )

            if status == SUCCESS_STATUS:
                LOGGER.info("apify run completed run_id=%s attempts=%s", run_id, attempt + 1)
                return run
            if status in FAILURE_STATUSES:
                LOGGER.warning("apify run failed run_id=%s status=%s", run_id, status)
                raise ProviderRunError(status, run_id=run_id)

            await self._sleep(self._poll_interval_seconds)

        raise ProviderTimeoutError(
            f"Apify run timeout (run_id={run_id}, attempts={self._max_attempts})"
        )


def _normalize_status(raw_value: object) -> str | None:
    if isinstance(raw_value, str) and raw_value.strip():
        return raw_value.strip().upper()
    return None
