"""Lifecycle coordination for the USB SSH server."""

from usbssh.lifecycle.coordinator import LifecycleCoordinator, PlugSensor
from usbssh.lifecycle.events import EventSource, LifecycleEvent
from usbssh.lifecycle.monitor import UsbPlugMonitor
from usbssh.lifecycle.notify import (
    BufferedNotifier,
    LogNotifier,
    Notification,
    Notifier,
)
from usbssh.lifecycle.state import PlugState, RuntimeState, StatusSnapshot

__all__ = [
    "BufferedNotifier",
    "EventSource",
    "LifecycleCoordinator",
    "LifecycleEvent",
    "LogNotifier",
    "Notification",
    "Notifier",
    "PlugSensor",
    "PlugState",
    "RuntimeState",
    "StatusSnapshot",
    "UsbPlugMonitor",
]
