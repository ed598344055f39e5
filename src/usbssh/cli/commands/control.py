"""Commands that drive the running daemon over the control socket."""

from enum import Enum
from pathlib import Path
from typing import Annotated, Any

import typer

from usbssh.cli.console import (
    console,
    create_table,
    dim,
    show_notifications,
    success,
)
from usbssh.cli.context import ConfigPathOption, call_daemon


class NotifyEvent(str, Enum):
    """Hardware events external hooks can report."""

    SUSPEND = "suspend"
    RESUME = "resume"
    PLUG_IN = "plug-in"
    PLUG_OUT = "plug-out"


NOTIFY_METHODS = {
    NotifyEvent.SUSPEND: "event.suspend",
    NotifyEvent.RESUME: "event.resume",
    NotifyEvent.PLUG_IN: "event.plug_in",
    NotifyEvent.PLUG_OUT: "event.plug_out",
}


def _run_user_action(method: str, config_path: Path | None) -> None:
    result = call_daemon(method, config_path=config_path)
    notifications = result.get("notifications", [])
    if notifications:
        show_notifications(notifications)
    else:
        dim("Nothing to do")
    if any(n.get("warning") for n in notifications):
        raise typer.Exit(1)


def _print_status(status: dict[str, Any]) -> None:
    table = create_table(
        "USB SSH Server Status",
        [
            ("Property", "cyan"),
            ("Value", ""),
        ],
    )
    if status["running"]:
        table.add_row("State", "[green]running[/green]")
    else:
        table.add_row("State", "[yellow]stopped[/yellow]")
    if status.get("pid"):
        table.add_row("PID", str(status["pid"]))
    table.add_row("Port", str(status["port"]))
    table.add_row("USB", status["plug_state"])

    if status["gadget_supported"]:
        gadget = "active" if status["gadget_active"] else "inactive"
        if status["gadget_owned"]:
            gadget += " (owned)"
        table.add_row("Gadget", gadget)
    else:
        table.add_row("Gadget", "[dim]unsupported[/dim]")

    pending = [
        label
        for key, label in (
            ("autostart_pending", "start when plugged in"),
            ("resume_after_suspend", "resume after suspend"),
            ("resume_after_unplug", "restart when replugged"),
        )
        if status.get(key)
    ]
    if pending:
        table.add_row("Pending", ", ".join(pending))

    console.print(table)


def register(app: typer.Typer) -> None:
    """Register control commands."""

    @app.command()
    def toggle(config_path: ConfigPathOption = None) -> None:
        """Start the SSH server if stopped, stop it if running."""
        _run_user_action("service.toggle", config_path)

    @app.command()
    def start(config_path: ConfigPathOption = None) -> None:
        """Start the SSH server."""
        _run_user_action("service.start", config_path)

    @app.command()
    def stop(config_path: ConfigPathOption = None) -> None:
        """Stop the SSH server."""
        _run_user_action("service.stop", config_path)

    @app.command()
    def status(config_path: ConfigPathOption = None) -> None:
        """Show SSH server status."""
        result = call_daemon("service.status", config_path=config_path)
        _print_status(result["status"])

    @app.command()
    def notify(
        event: Annotated[
            NotifyEvent,
            typer.Argument(help="Event to report to the daemon"),
        ],
        config_path: ConfigPathOption = None,
    ) -> None:
        """Report a suspend, resume or USB plug event (for system hooks)."""
        call_daemon(NOTIFY_METHODS[event], config_path=config_path)
        success(f"Reported {event.value}")
