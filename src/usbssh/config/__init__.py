"""Configuration module."""

from usbssh.config.loader import load_config
from usbssh.config.models import (
    AppConfig,
    ConfigError,
    ControlConfig,
    LoggingConfig,
    MonitorConfig,
    PlatformConfig,
    ServiceConfig,
)
from usbssh.config.paths import (
    get_config_path,
    get_control_socket_path,
    get_settings_path,
    get_usbssh_home,
)
from usbssh.config.settings import SettingsStore

__all__ = [
    "AppConfig",
    "ConfigError",
    "ControlConfig",
    "LoggingConfig",
    "MonitorConfig",
    "PlatformConfig",
    "ServiceConfig",
    "SettingsStore",
    "get_config_path",
    "get_control_socket_path",
    "get_settings_path",
    "get_usbssh_home",
    "load_config",
]
