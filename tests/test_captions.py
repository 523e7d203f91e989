from __future__ import annotations

import asyncio
from typing import Any

import pytest

from video_research.services import http_transport
from video_research.services.captions import (
    CaptionFetcher,
    is_usable_caption,
    parse_caption_document,
)

_TIMEDTEXT = (
    '<?xml version="1.0" encoding="utf-8" ?><transcript>'
    '<text start="0.5" dur="1.2">it&#39;s time</text>'
    '<text start="1.7" dur="2.0">to say &quot;hello&quot; &amp; wave</text>'
    "</transcript>"
)


def test_parse_caption_document_joins_segments_and_unescapes() -> None:
    assert parse_caption_document(_TIMEDTEXT) == 'it\'s time to say "hello" & wave'


def test_parse_caption_document_strips_tags_without_segments() -> None:
    assert parse_caption_document("<p>plain\n  caption</p>  <br/>text") == "plain caption text"


def test_is_usable_caption_requires_more_than_twenty_chars() -> None:
    assert is_usable_caption(None) is False
    assert is_usable_caption("x" * 20) is False
    assert is_usable_caption("x" * 21) is True


def test_fetch_requests_timedtext_track(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, Any] = {}

    def _fake_request(method: str, url: str, **kwargs: Any) -> http_transport.HttpResponse:
        captured.update(method=method, url=url, **kwargs)
        return http_transport.HttpResponse(200, _TIMEDTEXT)

    monkeypatch.setattr(http_transport, "request", _fake_request)
    fetcher = CaptionFetcher(base_url="https://captions.test/api/timedtext", language="en")

    text = asyncio.run(fetcher.fetch("dQw4w9WgXcQ"))

    assert text == 'it\'s time to say "hello" & wave'
    assert captured["method"] == "GET"
    assert captured["url"] == "https://captions.test/api/timedtext?v=dQw4w9WgXcQ&lang=en"


@pytest.mark.parametrize(
    "response",
    [
        http_transport.HttpResponse(404, "not found page"),
        http_transport.HttpResponse(200, "<x/>"),
        http_transport.HttpResponse(200, "<transcript><text>hi</text></transcript>"),
    ],
)
def test_fetch_returns_none_for_missing_or_short_tracks(
    monkeypatch: pytest.MonkeyPatch,
    response: http_transport.HttpResponse,
) -> None:
    monkeypatch.setattr(http_transport, "request", lambda *args, **kwargs: response)

    assert asyncio.run(CaptionFetcher().fetch("dQw4w9WgXcQ")) is None


def test_fetch_swallows_transport_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    def _fail(*args: Any, **kwargs: Any) -> http_transport.HttpResponse:
        raise http_transport.TransportError("GET failed: timed out")

    monkeypatch.setattr(http_transport, "request", _fail)

    assert asyncio.run(CaptionFetcher().fetch("dQw4w9WgXcQ")) is None
