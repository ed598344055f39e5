"""Centralized path management for usbssh.

Daemon state (config, preferences, logs, control socket) lives under a single
base directory. The base directory can be overridden with the USBSSH_HOME
environment variable.

Default locations:
- Linux: ~/.usbssh

Paths that belong to the managed SSH server itself (pid file, dropbear binary,
key material) are platform settings and live in ``PlatformConfig``.
"""

import os
from functools import lru_cache
from pathlib import Path

ENV_VAR = "USBSSH_HOME"


@lru_cache(maxsize=1)
def get_usbssh_home() -> Path:
    """Get the base directory for all usbssh data.

    Resolution order:
    1. USBSSH_HOME environment variable (if set)
    2. Platform default (~/.usbssh)

    Returns:
        Path to the usbssh home directory.
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()

    return Path.home() / ".usbssh"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_usbssh_home() / "config.toml"


def get_settings_path() -> Path:
    """Get the user preferences file path."""
    return get_usbssh_home() / "settings.toml"


def get_logs_path() -> Path:
    """Get the default logs directory path."""
    return get_usbssh_home() / "logs"


def get_run_path() -> Path:
    """Get the runtime directory path (control socket)."""
    return get_usbssh_home() / "run"


def get_control_socket_path() -> Path:
    """Get the control Unix socket path."""
    return get_run_path() / "control.sock"


def get_keys_dir(data_dir: Path) -> Path:
    """Get the directory holding SSH key material for the server.

    The patched dropbear reads ``settings/SSH/authorized_keys`` relative to
    its working directory, which is the data directory.
    """
    return data_dir / "settings" / "SSH"


def get_authorized_keys_path(data_dir: Path) -> Path:
    """Get the authorized_keys path inside the key directory."""
    return get_keys_dir(data_dir) / "authorized_keys"


def get_all_paths() -> dict[str, Path]:
    """Get all standard paths for debugging/display.

    Returns:
        Dict of path names to paths.
    """
    return {
        "home": get_usbssh_home(),
        "config": get_config_path(),
        "settings": get_settings_path(),
        "logs": get_logs_path(),
        "run": get_run_path(),
        "control_socket": get_control_socket_path(),
    }
