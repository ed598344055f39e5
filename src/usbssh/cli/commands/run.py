"""Daemon command."""

import asyncio
from typing import Annotated

import typer

from usbssh.cli.console import console
from usbssh.cli.context import ConfigPathOption, get_config


def register(app: typer.Typer) -> None:
    """Register the run command."""

    @app.command()
    def run(
        config_path: ConfigPathOption = None,
        log_level: Annotated[
            str | None,
            typer.Option(
                "--log-level",
                "-l",
                help="Log level (DEBUG, INFO, WARNING, ERROR)",
            ),
        ] = None,
        log_file: Annotated[
            bool,
            typer.Option(
                "--log-file/--no-log-file",
                help="Also write JSONL logs under the usbssh home",
            ),
        ] = False,
    ) -> None:
        """Run the usbssh daemon in the foreground."""
        from usbssh.config import SettingsStore
        from usbssh.daemon import Daemon
        from usbssh.logging import configure_logging

        app_config = get_config(config_path)

        configure_logging(
            level=log_level or app_config.logging.level,
            use_rich=True,
            log_to_file=log_file or app_config.logging.to_file,
        )

        daemon = Daemon(app_config, SettingsStore())
        try:
            asyncio.run(daemon.run())
        except KeyboardInterrupt:
            console.print("\n[bold yellow]usbssh stopped[/bold yellow]")
