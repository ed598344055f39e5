"""Config and daemon access shared by CLI commands."""

from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer
from rich.markup import escape

from usbssh.cli.console import dim, error

if TYPE_CHECKING:
    from usbssh.config import AppConfig

ConfigPathOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to configuration file",
    ),
]


def get_config(config_path: Path | None = None) -> "AppConfig":
    """Load the app config, or print the problem and exit 1."""
    from usbssh.config import ConfigError, load_config

    try:
        return load_config(config_path)
    except (FileNotFoundError, ConfigError) as e:
        error(escape(str(e)))
        raise typer.Exit(1) from None


def call_daemon(
    method: str,
    params: dict[str, Any] | None = None,
    config_path: Path | None = None,
) -> Any:
    """Call the daemon on its configured socket.

    Failures become a red message and exit 1.
    """
    from usbssh.control.client import ControlError, control_call

    socket_path = get_config(config_path).control.socket_path
    try:
        return control_call(method, params, socket_path)
    except ConnectionError as e:
        error(escape(str(e)))
        dim("Start it with 'usbssh run'")
        raise typer.Exit(1) from None
    except ControlError as e:
        if e.service_code:
            error(f"usbssh daemon error ({e.service_code}): {escape(str(e))}")
        else:
            error(f"usbssh daemon error: {escape(str(e))}")
        raise typer.Exit(1) from None
