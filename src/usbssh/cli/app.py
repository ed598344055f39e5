"""Main CLI application."""

import typer

from usbssh.cli.commands import config, control, keys, paths, run, settings

app = typer.Typer(
    name="usbssh",
    help="usbssh - SSH over USB ethernet for e-readers",
    no_args_is_help=True,
)

run.register(app)
control.register(app)
settings.register(app)
config.register(app)
keys.register(app)
paths.register(app)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
