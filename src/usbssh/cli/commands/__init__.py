"""CLI command modules."""

from usbssh.cli.commands import config, control, keys, paths, run, settings

__all__ = [
    "config",
    "control",
    "keys",
    "paths",
    "run",
    "settings",
]
