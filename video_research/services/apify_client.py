from __future__ import annotations

import asyncio
import logging
from typing import Any, cast

from video_research.models.records import JobHandle
from video_research.services import http_transport
from video_research.services.errors import ProviderNetworkError, ProviderRequestError

LOGGER = logging.getLogger("video_research.apify")

DEFAULT_APIFY_BASE_URL = "https://api.apify.com/v2"
_ERROR_BODY_PREVIEW_LENGTH = 300


def normalize_actor_id(actor_id: str) -> str:
    """Apify expects `username~actor-name` in URLs, not `username/actor-name`."""
    return actor_id.strip().replace("/", "~")


class ApifyClient:
    def __init__(
        self,
        *,
        token: str,
        label: str = "Apify",
        base_url: str = DEFAULT_APIFY_BASE_URL,
        timeout_seconds: float = 30.0,
        proxy_prefix: str | None = None,
    ) -> None:
        self._token = token
        self._label = label
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = max(1.0, timeout_seconds)
        self._proxy_prefix = proxy_prefix

    @property
    def label(self) -> str:
        return self._label

    async def start_run(self, actor_id: str, run_input: dict[str, Any]) -> JobHandle:
        url = f"{self._base_url}/acts/{normalize_actor_id(actor_id)}/runs"
        response = await self._send("POST", url, json_body=run_input)
        if not response.ok:
            LOGGER.error(
                "apify run submission rejected label=%s actor_id=%s status=%s body=%s",
                self._label,
                actor_id,
                response.status_code,
                response.body[:_ERROR_BODY_PREVIEW_LENGTH],
            )
            raise ProviderRequestError(
                f"{self._label} API failed: {response.status_code}",
                status_code=response.status_code,
            )

        data = _as_dict(_as_dict(response.json()).get("data"))
        run_id = _coerce_nonempty_string(data.get("id"))
        dataset_id = _coerce_nonempty_string(data.get("defaultDatasetId"))
        if run_id is None or dataset_id is None:
            raise ProviderRequestError(
                f"{self._label} API returned a run without id or dataset id.",
                status_code=response.status_code,
            )
        LOGGER.info(
            "apify run started label=%s actor_id=%s run_id=%s dataset_id=%s",
            self._label,
            actor_id,
            run_id,
            dataset_id,
        )
        return JobHandle(run_id=run_id, dataset_id=dataset_id)

    async def get_run(self, run_id: str) -> dict[str, Any]:
        response = await self._send("GET", f"{self._base_url}/actor-runs/{run_id}")
        if not response.ok:
            raise ProviderRequestError(
                f"{self._label} run status request failed: {response.status_code}",
                status_code=response.status_code,
            )
        return _as_dict(_as_dict(response.json()).get("data"))

    async def fetch_dataset_items(self, dataset_id: str) -> list[dict[str, Any]]:
        response = await self._send("GET", f"{self._base_url}/datasets/{dataset_id}/items")
        if not response.ok:
            raise ProviderRequestError(
                f"{self._label} dataset request failed: {response.status_code}",
                status_code=response.status_code,
            )
        payload = response.json()
        if not isinstance(payload, list):
            raise ProviderRequestError(
                f"{self._label} dataset response was not a list.",
                status_code=response.status_code,
            )
        return [_as_dict(item) for item in cast(list[Any], payload) if isinstance(item, dict)]

    async def _send(
        self,
        method: str,
        url: str,
        *,
        json_body: Any = None,
    ) -> http_transport.HttpResponse:
        try:
            return await asyncio.to_thread(
                http_transport.request,
                method,
                http_transport.with_proxy(url, self._proxy_prefix),
                headers={"authorization": f"Bearer {self._token}"},
                json_body=json_body,
                timeout_seconds=self._timeout_seconds,
            )
        except http_transport.TransportError as exc:
            raise ProviderNetworkError(f"{self._label} network request failed: {exc}") from exc


def _coerce_nonempty_string(raw_value: object) -> str | None:
    if isinstance(raw_value, str) and raw_value.strip():
        return raw_value.strip()
    return None


def _as_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        raw_dict = cast(dict[object, object], value)
        converted: dict[str, Any] = {}
        for key, item in raw_dict.items():
            if isinstance(key, str):
                converted[key] = item
        return converted
    return {}
