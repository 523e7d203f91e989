from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, cast

from video_research.models.records import TranscriptionResult
from video_research.services import http_transport
from video_research.services.captions import is_usable_caption
from video_research.services.error_messages import classify_transcription_error
from video_research.services.errors import (
    MissingCredentialError,
    NoTranscriptError,
    TranscriptionRequestError,
)
from video_research.telemetry import TelemetryClient

LOGGER = logging.getLogger("video_research.transcription")

DEFAULT_TRANSCRIBE_BASE_URL = "https://api.gettranscribe.ai"
YOUTUBE_VIDEO_ID_PATTERN = re.compile(
    r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/|youtube\.com/shorts/)"
    r"([a-zA-Z0-9_-]{11})"
)

ProgressCallback = Callable[[int, int], None]


class Transcriber(Protocol):
    async def transcribe(self, url: str) -> str:
        ...


class CaptionSource(Protocol):
    async def fetch(self, video_id: str) -> str | None:
        ...


@dataclass(frozen=True)
class TranscriptionBatch:
    results: list[TranscriptionResult]

    @property
    def success_count(self) -> int:
        return sum(1 for result in self.results if result.status == "success")

    @property
    def status_message(self) -> str:
        if self.success_count == 0:
            return "No transcripts were generated for the provided URLs."
        return f"Transcribed {self.success_count} of {len(self.results)} videos"


def extract_youtube_video_id(url: str | None) -> str | None:
    if not url or "youtu" not in url:
        return None
    match = YOUTUBE_VIDEO_ID_PATTERN.search(url)
    if match is None:
        return None
    return match.group(1)


def parse_url_list(raw_text: str) -> list[str]:
    return [line.strip() for line in raw_text.splitlines() if line.strip()]


class GetTranscribeClient:
    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = DEFAULT_TRANSCRIBE_BASE_URL,
        timeout_seconds: float = 120.0,
    ) -> None:
        if not api_key.strip():
            raise MissingCredentialError("GetTranscribe")
        self._api_key = api_key.strip()
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = max(1.0, timeout_seconds)

    async def transcribe(self, url: str) -> str:
        try:
            response = await asyncio.to_thread(
                http_transport.request,
                "POST",
                f"{self._base_url}/transcriptions",
                headers={"x-api-key": self._api_key},
                json_body={"url": url},
                timeout_seconds=self._timeout_seconds,
            )
        except http_transport.TransportError as exc:
            raise TranscriptionRequestError(f"GetTranscribe request failed: {exc}") from exc

        if not response.ok:
            raise TranscriptionRequestError(f"GetTranscribe error: {response.body}")

        payload = response.json()
        data = cast(dict[str, Any], payload) if isinstance(payload, dict) else {}
        for key in ("transcript", "text"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
        raise NoTranscriptError("Transcript not available for this video")


class TranscriptionService:
    """
    Transcribes URLs one at a time, in input order.

    A failed primary transcription falls back to public YouTube captions when
    the URL carries a video id; a failure never stops the rest of the batch.
    """

    def __init__(
        self,
        *,
        transcriber: Transcriber,
        caption_source: CaptionSource | None = None,
        telemetry: TelemetryClient | None = None,
    ) -> None:
        self._transcriber = transcriber
        self._caption_source = caption_source
        self._telemetry = telemetry or TelemetryClient.disabled()

    async def transcribe_all(
        self,
        urls: Sequence[str],
        *,
        on_progress: ProgressCallback | None = None,
    ) -> TranscriptionBatch:
        results: list[TranscriptionResult] = []
        total = len(urls)
        with self._telemetry.span("transcription.batch", url_count=total) as closing:
            for index, url in enumerate(urls):
                result = await self._transcribe_one(url)
                results.append(result)
                self._telemetry.emit(
                    "transcription.item",
                    position=index + 1,
                    total=total,
                    status=result.status,
                )
                if on_progress is not None:
                    on_progress(index + 1, total)
            batch = TranscriptionBatch(results=results)
            closing.update(success_count=batch.success_count)

        LOGGER.info(
            "transcription batch finish total=%s succeeded=%s",
            total,
            batch.success_count,
        )
        return batch

    async def _transcribe_one(self, url: str) -> TranscriptionResult:
        try:
            transcript = await self._transcriber.transcribe(url)
        except Exception as exc:
            # Failures stay scoped to their URL; the batch always continues.
            LOGGER.info(
                "primary transcription failed url=%s error_type=%s error=%s",
                url,
                type(exc).__name__,
                exc,
            )
            fallback = await self._caption_fallback(url)
            if fallback is not None:
                return TranscriptionResult(url=url, status="success", transcript=fallback)
            return TranscriptionResult(
                url=url,
                status="error",
                error=classify_transcription_error(str(exc)),
            )
        return TranscriptionResult(url=url, status="success", transcript=transcript)

    async def _caption_fallback(self, url: str) -> str | None:
        if self._caption_source is None:
            return None
        video_id = extract_youtube_video_id(url)
        if video_id is None:
            return None
        text = await self._caption_source.fetch(video_id)
        if not is_usable_caption(text):
            return None
        LOGGER.info("caption fallback used url=%s video_id=%s", url, video_id)
        return text
