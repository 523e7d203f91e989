"""Settings commands for Video Research CLI."""

import click
from rich.console import Console
from rich.table import Table

from video_research.dependencies import get_settings_repository

console = Console()


@click.group()
def settings_group():
    """Show or edit API tokens, scraper actors and sheet target."""
    pass


@settings_group.command()
def show():
    """Show saved settings with tokens masked."""
    repository = get_settings_repository()
    table = Table(title=f"Settings ({repository.path})")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in repository.get().masked().items():
        table.add_row(key, value or "[dim]-[/dim]")
    console.print(table)


@settings_group.command(name="set")
@click.argument("pairs", nargs=-1, required=True)
def set_values(pairs: tuple[str, ...]):
    """Save KEY VALUE pairs, e.g. `tiktokApiToken abc youtubeActorId me/actor`."""
    if len(pairs) % 2 != 0:
        raise click.UsageError("Expected KEY VALUE pairs.")
    updates = dict(zip(pairs[::2], pairs[1::2]))

    try:
        saved = get_settings_repository().set(updates)
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise SystemExit(1) from exc

    configured = ", ".join(platform.value for platform in saved.configured_platforms())
    console.print("[green]Settings saved successfully![/green]")
    if configured:
        console.print(f"Platforms ready for discovery: {configured}")
    else:
        console.print("[yellow]Add an API token to enable discovery.[/yellow]")


@settings_group.command()
@click.confirmation_option(prompt="Are you sure you want to clear all saved data and settings?")
def clear():
    """Delete all saved settings."""
    get_settings_repository().clear()
    console.print("[green]All saved data cleared.[/green]")
