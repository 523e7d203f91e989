from __future__ import annotations

from pathlib import Path

import pytest

from video_research.models.records import Platform, TranscriptionResult, VideoRecord
from video_research.services.csv_export import export_csv, render_csv
from video_research.services.session_state import SessionState


def test_render_csv_quotes_every_value_and_doubles_quotes() -> None:
    content = render_csv([{"a": 'x"y', "b": 5}])

    assert content == 'a,b\n"x""y","5"'


def test_render_csv_uses_first_row_headers_and_blank_for_missing() -> None:
    content = render_csv([{"url": "u1", "error": None}, {"url": "u2", "extra": "ignored"}])

    assert content.splitlines() == ["url,error", '"u1",""', '"u2",""']


def test_render_csv_rejects_empty_input() -> None:
    with pytest.raises(ValueError, match="No data to export"):
        render_csv([])


def test_export_csv_writes_file(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "out.csv"

    written = export_csv([{"k": "v"}], target)

    assert written == target
    assert target.read_text(encoding="utf-8") == 'k\n"v"'


def test_discovery_csv_keeps_canonical_column_order() -> None:
    session = SessionState()
    session.replace_discovery(
        [VideoRecord(platform=Platform.TIKTOK, url="https://t.test/1", video_id="1", views=0)]
    )

    header, row = session.discovery_csv().splitlines()

    assert header == (
        "platform,url,videoId,caption,creator,creatorUsername,likes,comments,"
        "shares,saves,views,createdAt,hashtags,thumbnail"
    )
    assert row.startswith('"TikTok","https://t.test/1","1"')
    assert '"0"' in row


def test_transcription_csv_columns() -> None:
    session = SessionState()
    session.replace_transcriptions(
        [
            TranscriptionResult(url="u1", status="success", transcript="said \"hi\""),
            TranscriptionResult(url="u2", status="error", error="Transcription failed."),
        ]
    )

    assert session.transcription_csv().splitlines() == [
        "url,transcript,status,error",
        '"u1","said ""hi""","success",""',
        '"u2","","error","Transcription failed."',
    ]


def test_empty_session_exports_fail_with_tab_specific_messages() -> None:
    session = SessionState()

    with pytest.raises(ValueError, match="No results to export"):
        session.discovery_csv()
    with pytest.raises(ValueError, match="No transcriptions to export"):
        session.transcription_csv()


def test_select_urls_from_discovery_results() -> None:
    session = SessionState()
    session.replace_discovery(
        [
            VideoRecord(platform=Platform.TIKTOK, url="https://t.test/1"),
            VideoRecord(platform=Platform.YOUTUBE, url="https://y.test/2"),
        ]
    )

    assert session.select_urls([1, 0]) == ["https://y.test/2", "https://t.test/1"]
    with pytest.raises(ValueError, match="No videos selected from Discovery tab"):
        session.select_urls([])
    with pytest.raises(IndexError):
        session.select_urls([5])


def test_new_batches_replace_previous_ones_and_clear_resets() -> None:
    session = SessionState()
    session.replace_discovery([VideoRecord(platform=Platform.TIKTOK, url="old")])
    session.replace_discovery([VideoRecord(platform=Platform.TIKTOK, url="new")])
    session.replace_transcriptions([TranscriptionResult(url="u", status="success")])

    assert [video.url for video in session.discovery_results] == ["new"]

    session.clear()

    assert session.discovery_results == []
    assert session.transcription_results == []
