"""Path listing command."""

import typer

from usbssh.cli.console import console, create_table


def register(app: typer.Typer) -> None:
    """Register the paths command."""

    @app.command()
    def paths() -> None:
        """Show the files and directories usbssh uses."""
        from usbssh.config.paths import get_all_paths

        table = create_table(
            "usbssh Paths",
            [
                ("Name", "cyan"),
                ("Path", ""),
                ("Exists", {"justify": "center"}),
            ],
        )
        for name, path in get_all_paths().items():
            exists = "[green]yes[/green]" if path.exists() else "[dim]no[/dim]"
            table.add_row(name, str(path), exists)
        console.print(table)
