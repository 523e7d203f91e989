"""Main CLI entry point for Video Research."""

import click

from video_research.dependencies import get_settings
from video_research.logging_config import configure_application_logging

from .commands import discovery, settings, transcription


@click.group()
@click.version_option(version="0.1.0")
@click.option("--verbose", is_flag=True, help="Show info-level logs on stderr.")
def main(verbose: bool):
    """Video Research - discover and transcribe short-form videos."""
    configure_application_logging(
        get_settings(),
        console_stream=click.get_text_stream("stderr"),
        console_level="INFO" if verbose else "WARNING",
    )


# Discovery commands
main.add_command(discovery.discover)

# Transcription commands
main.add_command(transcription.transcribe)

# Settings commands
main.add_command(settings.settings_group, name="settings")


if __name__ == "__main__":
    main()
