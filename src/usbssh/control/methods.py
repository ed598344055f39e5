"""Control method handlers."""

import logging
from typing import TYPE_CHECKING, Any

from tomlkit.exceptions import TOMLKitError

from usbssh.config.models import ConfigError
from usbssh.lifecycle.events import LifecycleEvent

if TYPE_CHECKING:
    from usbssh.config.settings import SettingsStore
    from usbssh.control.server import ControlServer
    from usbssh.lifecycle.coordinator import LifecycleCoordinator
    from usbssh.lifecycle.events import EventSource
    from usbssh.lifecycle.notify import BufferedNotifier

logger = logging.getLogger(__name__)

# Background events that external hooks (udev rules, sleep hooks) report.
EVENT_METHODS = {
    "event.suspend": LifecycleEvent.SUSPEND,
    "event.resume": LifecycleEvent.RESUME,
    "event.plug_in": LifecycleEvent.PLUG_IN,
    "event.plug_out": LifecycleEvent.PLUG_OUT,
}


def register_service_methods(
    server: "ControlServer",
    coordinator: "LifecycleCoordinator",
    source: "EventSource",
    notifier: "BufferedNotifier",
    settings: "SettingsStore",
) -> None:
    """Register service control methods.

    User actions reply with the notifications they produced so the CLI can
    show them.

    Args:
        server: Control server to register methods on.
        coordinator: Lifecycle coordinator to drive.
        source: Event source the coordinator is attached to.
        notifier: Notifier the coordinator reports to.
        settings: Preference store to reload from.
    """

    def _reply() -> dict[str, Any]:
        return {
            "status": coordinator.snapshot().to_dict(),
            "notifications": [n.to_dict() for n in notifier.drain()],
        }

    async def service_toggle(params: dict[str, Any]) -> dict[str, Any]:
        await source.emit(LifecycleEvent.TOGGLE)
        return _reply()

    async def service_start(params: dict[str, Any]) -> dict[str, Any]:
        await coordinator.start(silent=False)
        return _reply()

    async def service_stop(params: dict[str, Any]) -> dict[str, Any]:
        await coordinator.stop()
        return _reply()

    async def service_status(params: dict[str, Any]) -> dict[str, Any]:
        return {"status": coordinator.snapshot().to_dict()}

    async def service_reload(params: dict[str, Any]) -> dict[str, Any]:
        settings.reload()
        try:
            config = settings.service_config()
        except TOMLKitError as e:
            raise ConfigError(
                f"Invalid settings file {settings.settings_path}: {e}"
            ) from e
        await coordinator.reload_config(config)
        return {"status": coordinator.snapshot().to_dict()}

    server.register("service.toggle", service_toggle)
    server.register("service.start", service_start)
    server.register("service.stop", service_stop)
    server.register("service.status", service_status)
    server.register("service.reload", service_reload)

    for method, event in EVENT_METHODS.items():
        server.register(method, _make_event_handler(coordinator, source, event))


def _make_event_handler(
    coordinator: "LifecycleCoordinator",
    source: "EventSource",
    event: LifecycleEvent,
):
    async def handler(params: dict[str, Any]) -> dict[str, Any]:
        logger.info("external_event_received", extra={"lifecycle.event": event.value})
        await source.emit(event)
        return {"status": coordinator.snapshot().to_dict()}

    return handler
