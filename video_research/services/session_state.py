from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from video_research.models.records import TranscriptionResult, VideoRecord
from video_research.services.csv_export import render_csv
from video_research.services.errors import InvalidInputError


@dataclass
class SessionState:
    """Latest discovery and transcription batches; each new batch replaces the last."""

    discovery_results: list[VideoRecord] = field(default_factory=list)
    transcription_results: list[TranscriptionResult] = field(default_factory=list)

    def replace_discovery(self, videos: Iterable[VideoRecord]) -> None:
        self.discovery_results = list(videos)

    def replace_transcriptions(self, results: Iterable[TranscriptionResult]) -> None:
        self.transcription_results = list(results)

    def select_urls(self, indices: Iterable[int]) -> list[str]:
        urls: list[str] = []
        for index in indices:
            if index < 0 or index >= len(self.discovery_results):
                raise IndexError(f"No discovery result at position {index}")
            urls.append(self.discovery_results[index].url)
        if not urls:
            raise InvalidInputError("No videos selected from Discovery tab")
        return urls

    def discovery_csv(self) -> str:
        if not self.discovery_results:
            raise InvalidInputError("No results to export")
        return render_csv([video.as_export_row() for video in self.discovery_results])

    def transcription_csv(self) -> str:
        if not self.transcription_results:
            raise InvalidInputError("No transcriptions to export")
        return render_csv([result.as_export_row() for result in self.transcription_results])

    def clear(self) -> None:
        self.discovery_results = []
        self.transcription_results = []
