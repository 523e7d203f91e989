"""Transcription commands for Video Research CLI."""

import asyncio
from pathlib import Path

import click
from rich.console import Console

from video_research.dependencies import get_transcription_service
from video_research.services.csv_export import export_csv
from video_research.services.errors import MissingCredentialError
from video_research.services.transcription_service import parse_url_list

from .formatting import transcription_table

console = Console()


@click.command()
@click.argument("urls", nargs=-1)
@click.option(
    "--file",
    "url_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Read video URLs from this file, one per line.",
)
@click.option(
    "--export",
    "export_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the results to this CSV file.",
)
def transcribe(urls: tuple[str, ...], url_file: Path | None, export_path: Path | None):
    """Transcribe video URLs one after another."""
    targets = [url.strip() for url in urls if url.strip()]
    if url_file is not None:
        targets.extend(parse_url_list(url_file.read_text(encoding="utf-8")))
    if not targets:
        console.print("[red]Please enter video URLs[/red]")
        raise SystemExit(1)

    try:
        service = get_transcription_service()
    except MissingCredentialError as exc:
        console.print(
            "[red]Please configure your GetTranscribe API token "
            "(`video-research settings set transcribeToken ...`).[/red]"
        )
        raise SystemExit(1) from exc

    with console.status(f"Transcribing {len(targets)} videos...") as status:

        def _progress(done: int, total: int) -> None:
            status.update(f"Transcribing videos... {done}/{total}")

        batch = asyncio.run(service.transcribe_all(targets, on_progress=_progress))

    console.print(transcription_table(batch.results))
    style = "green" if batch.success_count else "red"
    console.print(f"[{style}]{batch.status_message}[/{style}]")

    if export_path is not None:
        export_csv([result.as_export_row() for result in batch.results], export_path)
        console.print(f"Exported as CSV: [cyan]{export_path}[/cyan]")

    if batch.success_count == 0:
        raise SystemExit(1)
