"""Discovery commands for Video Research CLI."""

import asyncio
from pathlib import Path

import click
from rich.console import Console

from video_research.dependencies import get_discovery_service, get_settings
from video_research.services.csv_export import export_csv
from video_research.services.discovery_service import (
    PLATFORM_SELECTIONS,
    DiscoveryFilters,
    describe_discovery_error,
)
from video_research.services.errors import VideoResearchError

from .formatting import discovery_table

console = Console()


@click.command()
@click.argument("topic")
@click.option(
    "--platform",
    type=click.Choice(list(PLATFORM_SELECTIONS), case_sensitive=False),
    default="all",
    show_default=True,
)
@click.option("--min-views", type=click.IntRange(min=0), default=0, show_default=True)
@click.option("--min-likes", type=click.IntRange(min=0), default=0, show_default=True)
@click.option("--date-from", help="Earliest publish date (YYYY-MM-DD).")
@click.option("--date-to", help="Latest publish date (YYYY-MM-DD).")
@click.option("--max-results", type=click.IntRange(min=1), help="Results per platform.")
@click.option(
    "--export",
    "export_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the results to this CSV file.",
)
def discover(
    topic: str,
    platform: str,
    min_views: int,
    min_likes: int,
    date_from: str | None,
    date_to: str | None,
    max_results: int | None,
    export_path: Path | None,
):
    """Search TikTok, Instagram and YouTube for videos about TOPIC."""
    app_settings = get_settings()
    filters = DiscoveryFilters(
        min_views=min_views,
        min_likes=min_likes,
        date_from=date_from,
        date_to=date_to,
    )

    try:
        service = get_discovery_service()
        with console.status(f"Searching {platform} in parallel… (usually 1–3 min)"):
            result = asyncio.run(
                service.discover(
                    topic,
                    platform,
                    filters,
                    max_results=max_results or app_settings.discovery_default_max_results,
                )
            )
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise SystemExit(1) from exc
    except VideoResearchError as exc:
        console.print(f"[red]{describe_discovery_error(exc)}[/red]")
        raise SystemExit(1) from exc

    if result.outcome != "found":
        console.print(f"[yellow]{result.status_message}[/yellow]")
        return

    console.print(discovery_table(result.videos))
    console.print(f"[green]{result.status_message}[/green]")

    if export_path is not None:
        export_csv([video.as_export_row() for video in result.videos], export_path)
        console.print(f"Exported as CSV: [cyan]{export_path}[/cyan]")
