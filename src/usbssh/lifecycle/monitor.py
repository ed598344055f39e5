"""USB plug monitor: polls a sysfs attribute and emits plug events.

Works with any attribute whose content says whether a host is attached,
e.g. ``/sys/class/power_supply/usb/online`` (``0``/``1``) or an
android_usb ``state`` file (``DISCONNECTED``/``CONFIGURED``).
"""

import asyncio
import logging
from pathlib import Path

from usbssh.lifecycle.events import EventSource, LifecycleEvent
from usbssh.lifecycle.state import PlugState

logger = logging.getLogger(__name__)

PLUGGED_VALUES = frozenset({"1", "online", "connected", "configured", "attached"})


def parse_plug_state(content: str) -> PlugState:
    if content.strip().lower() in PLUGGED_VALUES:
        return PlugState.PLUGGED_IN
    return PlugState.UNPLUGGED


class UsbPlugMonitor:
    """Watches the plug state and emits PLUG_IN / PLUG_OUT on change.

    Also acts as the coordinator's plug sensor so a resume can re-read the
    cable state directly.

    Example:
        monitor = UsbPlugMonitor(Path("/sys/class/power_supply/usb/online"), source)
        await monitor.start()
    """

    def __init__(
        self,
        state_path: Path,
        source: EventSource,
        poll_interval: float = 1.0,
    ):
        self._state_path = state_path
        self._source = source
        self._poll_interval = poll_interval
        self._last_state = PlugState.UNKNOWN
        self._running = False
        self._task: asyncio.Task | None = None

    @property
    def state_path(self) -> Path:
        return self._state_path

    @property
    def last_state(self) -> PlugState:
        return self._last_state

    def read_plug_state(self) -> PlugState:
        try:
            content = self._state_path.read_text()
        except OSError:
            return PlugState.UNKNOWN
        return parse_plug_state(content)

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        # The initial state is reported to the coordinator by initialize(),
        # so only changes from here on become events.
        self._last_state = self.read_plug_state()
        logger.info(
            "plug_monitor_started",
            extra={
                "file.path": str(self._state_path),
                "usb.plug_state": self._last_state.value,
            },
        )
        self._task = asyncio.create_task(self._poll_loop())

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def check(self) -> None:
        """Read the plug state once and emit an event if it changed."""
        current = self.read_plug_state()
        if current is PlugState.UNKNOWN or current is self._last_state:
            return
        self._last_state = current
        event = (
            LifecycleEvent.PLUG_IN
            if current is PlugState.PLUGGED_IN
            else LifecycleEvent.PLUG_OUT
        )
        logger.info("usb_plug_changed", extra={"usb.plug_state": current.value})
        await self._source.emit(event)

    async def _poll_loop(self) -> None:
        while self._running:
            try:
                await self.check()
            except Exception as e:
                logger.error("plug_check_error", extra={"error.message": str(e)})
            await asyncio.sleep(self._poll_interval)
