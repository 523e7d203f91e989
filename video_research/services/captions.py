from __future__ import annotations

import asyncio
import logging
import re
from urllib.parse import urlencode

from video_research.services import http_transport

LOGGER = logging.getLogger("video_research.captions")

DEFAULT_CAPTIONS_BASE_URL = "https://www.youtube.com/api/timedtext"
DEFAULT_CAPTIONS_LANGUAGE = "en"
MIN_CAPTION_LENGTH = 20
MIN_DOCUMENT_LENGTH = 10

_SEGMENT_PATTERN = re.compile(r"<text[^>]*>([^<]*)</text>")
_TAG_PATTERN = re.compile(r"<[^>]+>")
_WHITESPACE_PATTERN = re.compile(r"\s+")
_ENTITIES: tuple[tuple[str, str], ...] = (
    ("&#39;", "'"),
    ("&quot;", '"'),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&amp;", "&"),
)


def parse_caption_document(document: str) -> str:
    """
    Extract plain text from a timedtext document.

    `<text start=".." dur="..">..</text>` segments are joined with spaces;
    anything else is tag-stripped with whitespace collapsed.
    """
    segments = _SEGMENT_PATTERN.findall(document)
    if segments:
        return " ".join(_unescape(segment) for segment in segments).strip()
    return _WHITESPACE_PATTERN.sub(" ", _TAG_PATTERN.sub(" ", document)).strip()


def is_usable_caption(text: str | None) -> bool:
    return text is not None and len(text) > MIN_CAPTION_LENGTH


class CaptionFetcher:
    def __init__(
        self,
        *,
        base_url: str = DEFAULT_CAPTIONS_BASE_URL,
        language: str = DEFAULT_CAPTIONS_LANGUAGE,
        timeout_seconds: float = 30.0,
        proxy_prefix: str | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._language = language
        self._timeout_seconds = max(1.0, timeout_seconds)
        self._proxy_prefix = proxy_prefix

    async def fetch(self, video_id: str) -> str | None:
        url = f"{self._base_url}?{urlencode({'v': video_id, 'lang': self._language})}"
        try:
            response = await asyncio.to_thread(
                http_transport.request,
                "GET",
                http_transport.with_proxy(url, self._proxy_prefix),
                headers={"accept": "*/*"},
                timeout_seconds=self._timeout_seconds,
            )
        except http_transport.TransportError as exc:
            LOGGER.info("caption fetch failed video_id=%s error=%s", video_id, exc)
            return None

        if not response.ok or len(response.body) < MIN_DOCUMENT_LENGTH:
            LOGGER.info(
                "caption track unavailable video_id=%s status=%s length=%s",
                video_id,
                response.status_code,
                len(response.body),
            )
            return None

        text = parse_caption_document(response.body)
        if not is_usable_caption(text):
            return None
        return text


def _unescape(segment: str) -> str:
    for entity, replacement in _ENTITIES:
        segment = segment.replace(entity, replacement)
    return segment
