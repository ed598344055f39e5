"""Command-line interface for usbssh."""

from usbssh.cli.app import app

__all__ = ["app"]
