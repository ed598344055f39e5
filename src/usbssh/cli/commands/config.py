"""Configuration management commands."""

from pathlib import Path
from typing import Annotated

import click
import typer

from usbssh.cli.console import console, create_table, error, success


def register(app: typer.Typer) -> None:
    """Register the config command."""

    @app.command()
    def config(
        action: Annotated[
            str | None,
            typer.Argument(help="Action: show, validate"),
        ] = None,
        path: Annotated[
            Path | None,
            typer.Option(
                "--path",
                "-p",
                help="Path to config file (default: $USBSSH_HOME/config.toml)",
            ),
        ] = None,
    ) -> None:
        """Manage configuration."""
        if action is None:
            ctx = click.get_current_context()
            click.echo(ctx.get_help())
            raise typer.Exit(0)

        from rich.syntax import Syntax

        from usbssh.config import ConfigError, load_config
        from usbssh.config.paths import get_config_path
        from usbssh.service.platform import detect_capabilities

        expanded_path = path.expanduser() if path else get_config_path()

        if action == "show":
            if not expanded_path.exists():
                error(f"Config file not found: {expanded_path}")
                console.print("Defaults are in effect; see 'usbssh config validate'")
                raise typer.Exit(1)

            content = expanded_path.read_text()
            syntax = Syntax(content, "toml", theme="monokai", line_numbers=True)
            console.print(f"[bold]Config file: {expanded_path}[/bold]\n")
            console.print(syntax)

        elif action == "validate":
            try:
                config_obj = load_config(path.expanduser() if path else None)
            except FileNotFoundError as e:
                error(str(e))
                raise typer.Exit(1) from None
            except ConfigError as e:
                error("Configuration validation failed:")
                console.print(str(e), highlight=False)
                raise typer.Exit(1) from None

            platform = config_obj.platform
            capabilities = detect_capabilities(platform)

            table = create_table(
                "Configuration Summary",
                [
                    ("Setting", "cyan"),
                    ("Value", "green"),
                ],
            )
            table.add_row("Data directory", str(platform.data_dir))
            table.add_row("Dropbear", str(platform.resolve_dropbear()))
            table.add_row("PID file", str(platform.pid_path))
            table.add_row("Gadget helper", str(platform.gadget_helper))
            table.add_row("Interface", platform.interface)
            table.add_row(
                "USB gadget",
                f"{platform.usb_gadget} -> "
                f"{'yes' if capabilities.supports_usb_gadget else 'no'}",
            )
            table.add_row(
                "devpts mount",
                f"{platform.devpts} -> {'yes' if capabilities.needs_devpts else 'no'}",
            )
            monitor = config_obj.monitor
            table.add_row(
                "Plug monitor",
                str(monitor.plug_state_path)
                if monitor.enabled
                else "[dim]not configured[/dim]",
            )
            table.add_row("Control socket", str(config_obj.control.socket_path))

            success("Configuration is valid!")
            console.print()
            console.print(table)

        else:
            error(f"Unknown action: {action}")
            console.print("Valid actions: show, validate")
            raise typer.Exit(1)

