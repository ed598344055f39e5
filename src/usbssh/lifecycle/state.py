"""Runtime state owned by the lifecycle coordinator."""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


class PlugState(Enum):
    """Whether the USB cable is connected to a host."""

    UNKNOWN = "unknown"  # Only before the first observation
    PLUGGED_IN = "plugged-in"
    UNPLUGGED = "unplugged"


@dataclass
class RuntimeState:
    """Mutable coordinator state.

    The deferred-start flags record *why* a future start should happen:
    - autostart_pending: a start was requested while unplugged
    - resume_after_suspend: the server was running when the host suspended
    - resume_after_unplug: the server was stopped because the cable was pulled
    """

    plug_state: PlugState = PlugState.UNKNOWN
    autostart_pending: bool = False
    resume_after_suspend: bool = False
    resume_after_unplug: bool = False

    def clear_deferred(self) -> None:
        self.autostart_pending = False
        self.resume_after_suspend = False
        self.resume_after_unplug = False

    def reset(self) -> None:
        self.plug_state = PlugState.UNKNOWN
        self.clear_deferred()


@dataclass
class StatusSnapshot:
    """Point-in-time view of the coordinator for status displays."""

    running: bool
    pid: int | None
    port: int
    plug_state: PlugState
    autostart_pending: bool
    resume_after_suspend: bool
    resume_after_unplug: bool
    gadget_supported: bool
    gadget_owned: bool
    gadget_active: bool

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["plug_state"] = self.plug_state.value
        return data
