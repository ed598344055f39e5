"""Preference editing commands."""

from typing import TYPE_CHECKING, Annotated

import typer

from usbssh.cli.console import (
    confirm_or_cancel,
    console,
    create_table,
    dim,
    error,
    success,
)
from usbssh.cli.context import ConfigPathOption, get_config
from usbssh.config import settings as keys

if TYPE_CHECKING:
    from usbssh.config import AppConfig

TRUE_WORDS = frozenset({"1", "true", "yes", "on"})
FALSE_WORDS = frozenset({"0", "false", "no", "off"})


def parse_flag(value: str) -> bool:
    """Parse an on/off word; raises ValueError for anything else."""
    word = value.strip().lower()
    if word in TRUE_WORDS:
        return True
    if word in FALSE_WORDS:
        return False
    raise ValueError(f"Expected on/off, got {value!r}")


def _server_running(app_config: "AppConfig") -> bool:
    """Ask the daemon, falling back to the pid file when it is not reachable."""
    from usbssh.control.client import ControlError, control_call

    socket_path = app_config.control.socket_path
    try:
        reply = control_call("service.status", socket_path=socket_path)
        return bool(reply["status"]["running"])
    except (ConnectionError, ControlError):
        return app_config.platform.pid_path.exists()


def _refuse_if_running(app_config: "AppConfig") -> None:
    # Port and login options are baked into the running process.
    if _server_running(app_config):
        error("Stop the SSH server before changing settings")
        raise typer.Exit(1)


def _reload_daemon(app_config: "AppConfig") -> None:
    from usbssh.control.client import ControlError, control_call

    try:
        control_call("service.reload", socket_path=app_config.control.socket_path)
    except ConnectionError:
        dim("usbssh daemon is not running; changes apply when it starts")
    except ControlError as e:
        error(f"usbssh daemon could not reload settings: {e}")
        raise typer.Exit(1) from None


def register(app: typer.Typer) -> None:
    """Register settings subcommands."""
    settings_app = typer.Typer(
        help="View and edit SSH server preferences", no_args_is_help=True
    )
    app.add_typer(settings_app, name="settings")

    @settings_app.command("show")
    def settings_show() -> None:
        """Show current preferences."""
        from usbssh.config import SettingsStore

        store = SettingsStore()
        config = store.service_config()

        table = create_table(
            "SSH Server Settings",
            [
                ("Setting", "cyan"),
                ("Value", ""),
                ("Source", "dim"),
            ],
        )

        def source(key: str) -> str:
            return "settings" if store.has_setting(key) else "default"

        rows = (
            (keys.PORT, str(config.port)),
            (keys.ALLOW_NO_PASSWORD, config.allow_no_password),
            (keys.AUTOSTART, config.autostart),
            (keys.STOP_GADGET_ON_STOP, config.stop_gadget_on_stop),
            (keys.PAUSE_ON_SUSPEND, config.pause_on_suspend),
            (keys.START_ONLY_ON_USB, config.start_only_when_plugged),
            (keys.STOP_ON_UNPLUG, config.stop_on_unplug),
        )
        for key, value in rows:
            if isinstance(value, bool):
                value = "[green]on[/green]" if value else "[yellow]off[/yellow]"
            table.add_row(key, value, source(key))

        console.print(table)
        dim(f"File: {store.settings_path}")

    @settings_app.command("set")
    def settings_set(
        key: Annotated[str, typer.Argument(help="Setting name")],
        value: Annotated[str, typer.Argument(help="New value (port number or on/off)")],
        config_path: ConfigPathOption = None,
    ) -> None:
        """Change a preference."""
        from usbssh.config import SettingsStore

        if key not in keys.KNOWN_KEYS:
            error(f"Unknown setting: {key}")
            console.print(f"Valid settings: {', '.join(keys.KNOWN_KEYS)}")
            raise typer.Exit(1)

        app_config = get_config(config_path)
        _refuse_if_running(app_config)
        store = SettingsStore()

        if key == keys.PORT:
            port = keys.parse_port(value)
            if port is None:
                error(f"Invalid port: {value}")
                raise typer.Exit(1)
            store.save_setting(keys.PORT, port)
            success(f"{key} = {port}")
        else:
            try:
                enabled = parse_flag(value)
            except ValueError as e:
                error(str(e))
                raise typer.Exit(1) from None
            store.set_flag(key, enabled)
            success(f"{key} = {'on' if enabled else 'off'}")

        _reload_daemon(app_config)

    @settings_app.command("reset")
    def settings_reset(
        key: Annotated[
            str | None,
            typer.Argument(help="Setting to reset (default: all)"),
        ] = None,
        force: Annotated[
            bool,
            typer.Option("--force", "-f", help="Skip confirmation"),
        ] = False,
        config_path: ConfigPathOption = None,
    ) -> None:
        """Restore defaults for one or all preferences."""
        from usbssh.config import SettingsStore

        if key is not None and key not in keys.KNOWN_KEYS:
            error(f"Unknown setting: {key}")
            raise typer.Exit(1)

        app_config = get_config(config_path)
        _refuse_if_running(app_config)
        targets = [key] if key else list(keys.KNOWN_KEYS)
        if key is None and not confirm_or_cancel("Reset all settings?", force):
            raise typer.Exit(0)

        store = SettingsStore()
        for target in targets:
            store.del_setting(target)
        success("Settings reset" if key is None else f"{key} reset")

        _reload_daemon(app_config)
