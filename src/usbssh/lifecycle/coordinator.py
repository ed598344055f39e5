"""Lifecycle coordinator for the USB SSH server.

Decides when the SSH server and the USB ethernet gadget are started,
stopped, deferred or re-armed. There is no single mode variable: every
decision is computed from the preference snapshot (``ServiceConfig``), the
runtime flags (``RuntimeState``) and which event fired. Whether the server is
running is always asked of the supervisor, never cached.

Failure reporting depends on who asked. User-initiated operations (toggle,
start, stop) report failures through the notifier; background events
(suspend, resume, plug, unplug, shutdown) only log them.

All public operations take the same asyncio lock and run to completion
before the next one starts, so overlapping start/stop sequences cannot
happen even when several producers deliver events at once.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

from usbssh.config.models import ServiceConfig
from usbssh.lifecycle.events import EventSource, LifecycleEvent
from usbssh.lifecycle.notify import LogNotifier, Notification, Notifier
from usbssh.lifecycle.state import PlugState, RuntimeState, StatusSnapshot
from usbssh.service.errors import ServiceError
from usbssh.service.gadget import GadgetController
from usbssh.service.network import describe_network
from usbssh.service.pid import read_pid_file
from usbssh.service.supervisor import ProcessSupervisor

logger = logging.getLogger(__name__)

START_NOTICE_TIMEOUT = 12
STOP_NOTICE_TIMEOUT = 2


class PlugSensor(Protocol):
    """Reads the current USB plug state on demand."""

    def read_plug_state(self) -> PlugState: ...


class LifecycleCoordinator:
    """State machine driving the SSH server and the USB gadget.

    Example:
        coordinator = LifecycleCoordinator(config, supervisor, gadget, notifier)
        coordinator.attach(event_source)
        await coordinator.initialize()
    """

    def __init__(
        self,
        config: ServiceConfig,
        supervisor: ProcessSupervisor,
        gadget: GadgetController,
        notifier: Notifier | None = None,
        *,
        plug_sensor: PlugSensor | None = None,
        network_info: Callable[[str], str] = describe_network,
    ):
        self._config = config
        self._supervisor = supervisor
        self._gadget = gadget
        self._notifier = notifier or LogNotifier()
        self._plug_sensor = plug_sensor
        self._network_info = network_info
        self._lock = asyncio.Lock()
        self.state = RuntimeState()

    @property
    def config(self) -> ServiceConfig:
        return self._config

    def attach(self, source: EventSource) -> None:
        """Subscribe to every lifecycle event of an event source."""
        source.subscribe(LifecycleEvent.TOGGLE, self.toggle)
        source.subscribe(LifecycleEvent.PLUG_IN, self.on_usb_plug_in)
        source.subscribe(LifecycleEvent.PLUG_OUT, self.on_usb_plug_out)
        source.subscribe(LifecycleEvent.SUSPEND, self.on_suspend)
        source.subscribe(LifecycleEvent.RESUME, self.on_resume)

    def is_running(self) -> bool:
        return self._supervisor.is_running()

    def snapshot(self) -> StatusSnapshot:
        running = self.is_running()
        return StatusSnapshot(
            running=running,
            pid=read_pid_file(self._supervisor.pid_path) if running else None,
            port=self._config.port,
            plug_state=self.state.plug_state,
            autostart_pending=self.state.autostart_pending,
            resume_after_suspend=self.state.resume_after_suspend,
            resume_after_unplug=self.state.resume_after_unplug,
            gadget_supported=self._gadget.supported,
            gadget_owned=self._gadget.owned,
            gadget_active=self._gadget.active,
        )

    # -- Public operations -------------------------------------------------

    async def initialize(self) -> None:
        """Reset runtime state and honor the autostart preference."""
        async with self._lock:
            self.state.reset()
            self._gadget.reset()
            self._refresh_plug_state()
            logger.info(
                "coordinator_initialized",
                extra={
                    "usb.plug_state": self.state.plug_state.value,
                    "ssh.autostart": self._config.autostart,
                },
            )
            if self._config.autostart:
                await self._start(silent=True)

    async def reload_config(self, config: ServiceConfig) -> None:
        """Replace the preference snapshot after a user edit."""
        async with self._lock:
            self._config = config
            logger.info("service_config_reloaded", extra={"ssh.port": config.port})

    async def toggle(self) -> None:
        async with self._lock:
            if self.is_running():
                await self._stop()
            else:
                await self._start(silent=False)

    async def start(self, silent: bool = False) -> None:
        async with self._lock:
            await self._start(silent=silent)

    async def stop(self) -> None:
        async with self._lock:
            await self._stop()

    async def on_suspend(self) -> None:
        async with self._lock:
            if not self._config.pause_on_suspend:
                return
            # A deferred start must not fire on an unexpected wake-up.
            self.state.autostart_pending = False
            if self.is_running():
                self.state.resume_after_suspend = True
                logger.info("pausing_for_suspend")
                await self._force_stop(LifecycleEvent.SUSPEND.value)

    async def on_resume(self) -> None:
        async with self._lock:
            if not self.state.resume_after_suspend:
                return
            self.state.resume_after_suspend = False
            # The cable may have been pulled while asleep.
            self._refresh_plug_state()
            if (
                not self._config.start_only_when_plugged
                or self.state.plug_state is PlugState.PLUGGED_IN
            ):
                logger.info("resuming_after_suspend")
                await self._start(silent=True)
            else:
                logger.info("resume_deferred_until_plugged")
                self.state.autostart_pending = True

    async def on_usb_plug_in(self) -> None:
        async with self._lock:
            self.state.plug_state = PlugState.PLUGGED_IN
            if self.state.autostart_pending or self.state.resume_after_unplug:
                self.state.autostart_pending = False
                self.state.resume_after_unplug = False
                logger.info("starting_on_plug_in")
                await self._start(silent=True)
                return

            if self.is_running() and not self._gadget.active:
                # The interface dropped on its own; try to bring it back.
                try:
                    await self._gadget.enable()
                except ServiceError as e:
                    logger.warning(
                        "gadget_reenable_failed",
                        extra={"error.code": e.code, "error.message": str(e)},
                    )

    async def on_usb_plug_out(self) -> None:
        async with self._lock:
            self.state.plug_state = PlugState.UNPLUGGED
            if self._config.stop_on_unplug and self.is_running():
                self.state.resume_after_unplug = True
                logger.info("stopping_on_unplug")
                await self._force_stop(LifecycleEvent.PLUG_OUT.value)
                return

            if self._gadget.owned:
                await self._disable_gadget_quietly(LifecycleEvent.PLUG_OUT.value)

    async def on_shutdown(self) -> None:
        """Tear everything down before the host exits or reloads.

        Unlike the other background stops, the gadget is released even if the
        process could not be confirmed dead: nothing will be left to manage it.
        """
        async with self._lock:
            if self.is_running():
                logger.info("stopping_for_shutdown")
                try:
                    await self._supervisor.stop(force=True)
                except ServiceError as e:
                    logger.error(
                        "background_stop_failed",
                        extra={
                            "lifecycle.event": "shutdown",
                            "error.code": e.code,
                            "error.message": str(e),
                        },
                    )
            await self._disable_gadget_quietly("shutdown")

    # -- Internals (caller holds the lock) ---------------------------------

    def _refresh_plug_state(self) -> None:
        if self._plug_sensor is None:
            return
        observed = self._plug_sensor.read_plug_state()
        if observed is not PlugState.UNKNOWN:
            self.state.plug_state = observed

    def _notify(
        self, text: str, *, warning: bool = False, timeout: float | None = None
    ) -> None:
        self._notifier.notify(Notification(text=text, warning=warning, timeout=timeout))

    def _report_failure(self, event: str, error: ServiceError, silent: bool) -> None:
        logger.error(event, extra={"error.code": error.code, "error.message": str(error)})
        if not silent:
            self._notify(str(error), warning=True)

    async def _start(self, silent: bool) -> None:
        if self.is_running():
            logger.debug("start_skipped_already_running")
            return

        if (
            self._config.start_only_when_plugged
            and self.state.plug_state is not PlugState.PLUGGED_IN
        ):
            self.state.autostart_pending = True
            logger.info(
                "start_deferred_until_plugged",
                extra={"usb.plug_state": self.state.plug_state.value},
            )
            if not silent:
                self._notify("USB SSH server will start when USB is plugged in.")
            return

        # Whatever deferred this start is now satisfied.
        self.state.clear_deferred()

        try:
            await self._gadget.enable()
        except ServiceError as e:
            self._report_failure("gadget_enable_failed", e, silent)
            return

        try:
            await self._supervisor.start(self._config)
        except ServiceError as e:
            # The gadget stays up: it may be serving something else too.
            self._report_failure("ssh_server_start_failed", e, silent)
            return

        if not silent:
            network = self._network_info(self._gadget.interface_name)
            self._notify(
                f"USB SSH server started.\n\nSSH port: {self._config.port}\n{network}",
                timeout=START_NOTICE_TIMEOUT,
            )

    async def _stop(self) -> None:
        # An explicit stop cancels every pending auto-restart.
        self.state.autostart_pending = False
        self.state.resume_after_unplug = False

        try:
            await self._supervisor.stop(force=False)
        except ServiceError as e:
            logger.warning("graceful_stop_failed", extra={"error.message": str(e)})
            try:
                await self._supervisor.stop(force=True)
            except ServiceError as e:
                # Leave the gadget alone: cutting the link would strand the
                # process we failed to kill.
                logger.error(
                    "force_stop_failed",
                    extra={"error.code": e.code, "error.message": str(e)},
                )
                self._notify(f"Failed to stop USB SSH server: {e}", warning=True)
                return

        if self._config.stop_gadget_on_stop:
            try:
                await self._gadget.disable()
            except ServiceError as e:
                self._report_failure("gadget_disable_failed", e, silent=False)

        self._notify("USB SSH server stopped.", timeout=STOP_NOTICE_TIMEOUT)

    async def _force_stop(self, event: str) -> None:
        """Stop process and gadget without a grace period, logging failures."""
        try:
            await self._supervisor.stop(force=True)
        except ServiceError as e:
            logger.error(
                "background_stop_failed",
                extra={
                    "lifecycle.event": event,
                    "error.code": e.code,
                    "error.message": str(e),
                },
            )
            return
        await self._disable_gadget_quietly(event)

    async def _disable_gadget_quietly(self, event: str) -> None:
        try:
            await self._gadget.disable()
        except ServiceError as e:
            logger.warning(
                "gadget_disable_failed",
                extra={
                    "lifecycle.event": event,
                    "error.code": e.code,
                    "error.message": str(e),
                },
            )
