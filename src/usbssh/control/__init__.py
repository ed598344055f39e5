"""Control socket for the usbssh daemon.

The daemon listens on a Unix socket; the CLI and external hooks (udev
rules, suspend scripts) use it to deliver user actions and hardware events.
"""

from usbssh.control.client import ControlError, control_call
from usbssh.control.methods import EVENT_METHODS, register_service_methods
from usbssh.control.protocol import ErrorCode
from usbssh.control.server import ControlServer

__all__ = [
    "EVENT_METHODS",
    "ControlError",
    "ControlServer",
    "ErrorCode",
    "control_call",
    "register_service_methods",
]
