"""Configuration models using Pydantic."""

import logging
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from usbssh.config.paths import get_control_socket_path, get_usbssh_home

logger = logging.getLogger(__name__)

DEFAULT_PORT = 2222

# "auto" defers to platform detection, "on"/"off" force the capability.
CapabilityOverride = Literal["auto", "on", "off"]


class ServiceConfig(BaseModel):
    """Snapshot of the user's SSH server preferences.

    Immutable: the coordinator replaces the whole snapshot on reload instead
    of mutating individual flags between decisions.
    """

    model_config = ConfigDict(frozen=True)

    port: int = Field(default=DEFAULT_PORT, ge=0)
    allow_no_password: bool = False
    stop_gadget_on_stop: bool = True
    pause_on_suspend: bool = True
    start_only_when_plugged: bool = True
    stop_on_unplug: bool = True
    autostart: bool = False


class PlatformConfig(BaseModel):
    """Locations of the external pieces usbssh drives.

    Relative ``dropbear_path`` values are resolved against ``data_dir``,
    which is also the working directory of the spawned server.
    """

    data_dir: Path = Field(default_factory=get_usbssh_home)
    dropbear_path: Path = Path("dropbear")
    pid_path: Path = Path("/tmp/dropbear_usbssh.pid")
    gadget_helper: Path = Path("/etc/init.d/usb-gadget")
    interface: str = "rndis0"
    net_root: Path = Path("/sys/class/net")
    usb_gadget: CapabilityOverride = "auto"
    devpts: CapabilityOverride = "auto"
    poll_interval: float = Field(default=0.1, ge=0)

    def resolve_dropbear(self) -> Path:
        """Return the dropbear binary path, anchored at the data directory."""
        path = self.dropbear_path.expanduser()
        if path.is_absolute():
            return path
        return self.data_dir.expanduser() / path


class MonitorConfig(BaseModel):
    """Configuration for the USB plug monitor.

    The monitor is disabled unless a sysfs attribute to watch is configured.
    """

    plug_state_path: Path | None = None
    poll_interval: float = Field(default=1.0, gt=0)

    @property
    def enabled(self) -> bool:
        return self.plug_state_path is not None


class ControlConfig(BaseModel):
    """Configuration for the control socket."""

    socket_path: Path = Field(default_factory=get_control_socket_path)


class LoggingConfig(BaseModel):
    """Configuration for daemon logging."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None
    to_file: bool = False


class ConfigError(Exception):
    """Configuration error."""

    pass


class AppConfig(BaseModel):
    """Root configuration model."""

    platform: PlatformConfig = Field(default_factory=PlatformConfig)
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    control: ControlConfig = Field(default_factory=ControlConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
