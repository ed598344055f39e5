"""SSH key location command."""

from typing import Annotated

import typer

from usbssh.cli.console import console, dim, warning
from usbssh.cli.context import ConfigPathOption, get_config


def register(app: typer.Typer) -> None:
    """Register the keys command."""

    @app.command()
    def keys(
        create: Annotated[
            bool,
            typer.Option(
                "--create",
                help="Create the key directory if it is missing",
            ),
        ] = False,
        config_path: ConfigPathOption = None,
    ) -> None:
        """Show where to put SSH public keys for login."""
        from usbssh.config.paths import get_authorized_keys_path, get_keys_dir

        data_dir = get_config(config_path).platform.data_dir.expanduser()
        keys_path = get_authorized_keys_path(data_dir)

        if create:
            get_keys_dir(data_dir).mkdir(parents=True, exist_ok=True)

        console.print(str(keys_path), highlight=False, soft_wrap=True)
        if not keys_path.exists():
            warning("No authorized_keys file yet")
            dim("Add public keys there, or enable allow_no_password")
