"""Shared rendering helpers for the CLI."""

from rich.table import Table

from video_research.models.records import TranscriptionResult, VideoRecord

PREVIEW_LENGTH = 300


def format_number(value: int) -> str:
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if value >= 1_000:
        return f"{value / 1_000:.1f}K"
    return str(value)


def discovery_table(videos: list[VideoRecord]) -> Table:
    table = Table(title=f"Discovery Results ({len(videos)} videos)")
    table.add_column("#", justify="right")
    table.add_column("Platform")
    table.add_column("Video")
    table.add_column("Creator")
    table.add_column("Caption", max_width=60, no_wrap=True)
    table.add_column("Views", justify="right")
    table.add_column("Likes", justify="right")
    table.add_column("Comments", justify="right")

    for index, video in enumerate(videos):
        creator = video.creator
        if video.creator_username:
            creator = f"{creator}\n@{video.creator_username}"
        table.add_row(
            str(index),
            video.platform.value,
            video.url,
            creator,
            video.caption,
            format_number(video.views),
            format_number(video.likes),
            format_number(video.comments),
        )
    return table


def transcription_table(results: list[TranscriptionResult]) -> Table:
    table = Table(title=f"Transcription Results ({len(results)} videos)")
    table.add_column("Video URL")
    table.add_column("Status")
    table.add_column("Transcript Preview", max_width=80)

    for result in results:
        if result.status == "success":
            status = "[green]✓ Success[/green]"
        else:
            status = "[red]✗ Failed[/red]"
        if result.transcript:
            preview = result.transcript[:PREVIEW_LENGTH]
            if len(result.transcript) > PREVIEW_LENGTH:
                preview += "…"
        else:
            preview = f"[red]{result.error or 'No transcript'}[/red]"
        table.add_row(result.url, status, preview)
    return table
