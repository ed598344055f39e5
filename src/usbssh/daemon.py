"""Daemon wiring: builds the controllers and runs until signalled."""

from __future__ import annotations

import asyncio
import logging
import os
import signal as signal_module

from usbssh.config.models import AppConfig
from usbssh.config.settings import SettingsStore
from usbssh.control.methods import register_service_methods
from usbssh.control.server import ControlServer
from usbssh.lifecycle.coordinator import LifecycleCoordinator
from usbssh.lifecycle.events import EventSource
from usbssh.lifecycle.monitor import UsbPlugMonitor
from usbssh.lifecycle.notify import BufferedNotifier
from usbssh.service.gadget import GadgetController
from usbssh.service.platform import detect_capabilities
from usbssh.service.supervisor import ProcessSupervisor

logger = logging.getLogger(__name__)


class Daemon:
    """Owns the coordinator, its event producers and the control socket.

    Example:
        daemon = Daemon(load_config(), SettingsStore())
        asyncio.run(daemon.run())
    """

    def __init__(self, config: AppConfig, settings: SettingsStore) -> None:
        self.config = config
        self.settings = settings
        self.capabilities = detect_capabilities(config.platform)
        self.source = EventSource()
        self.notifier = BufferedNotifier()
        self.supervisor = ProcessSupervisor(config.platform, self.capabilities)
        self.gadget = GadgetController(config.platform, self.capabilities)

        self.monitor: UsbPlugMonitor | None = None
        if config.monitor.plug_state_path is not None:
            self.monitor = UsbPlugMonitor(
                config.monitor.plug_state_path,
                self.source,
                poll_interval=config.monitor.poll_interval,
            )

        self.coordinator = LifecycleCoordinator(
            settings.service_config(),
            self.supervisor,
            self.gadget,
            self.notifier,
            plug_sensor=self.monitor,
        )
        self.coordinator.attach(self.source)

        self.server = ControlServer(config.control.socket_path)
        register_service_methods(
            self.server, self.coordinator, self.source, self.notifier, settings
        )

        self._stop_event = asyncio.Event()

    async def start(self) -> None:
        logger.info(
            "daemon_starting",
            extra={
                "platform.usb_gadget": self.capabilities.supports_usb_gadget,
                "platform.devpts": self.capabilities.needs_devpts,
            },
        )
        await self.coordinator.initialize()
        if self.monitor:
            await self.monitor.start()
        await self.server.start()

    async def shutdown(self) -> None:
        """Stop the producers first, then tear the service down."""
        await self.server.stop()
        if self.monitor:
            await self.monitor.stop()
        await self.coordinator.on_shutdown()
        logger.info("daemon_stopped")

    def request_stop(self) -> None:
        self._stop_event.set()

    async def run(self) -> None:
        """Run until SIGTERM or SIGINT, then shut down cleanly."""
        loop = asyncio.get_running_loop()
        shutdown_count = 0

        def handle_signal() -> None:
            nonlocal shutdown_count
            shutdown_count += 1
            if shutdown_count == 1:
                logger.info("daemon_shutting_down")
                self.request_stop()
            else:
                logger.warning("daemon_force_shutdown")
                os._exit(1)

        for sig in (signal_module.SIGTERM, signal_module.SIGINT):
            loop.add_signal_handler(sig, handle_signal)

        try:
            await self.start()
            await self._stop_event.wait()
        finally:
            for sig in (signal_module.SIGTERM, signal_module.SIGINT):
                loop.remove_signal_handler(sig)
            await self.shutdown()
