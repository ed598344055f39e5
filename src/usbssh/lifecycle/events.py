"""Event source for lifecycle notifications.

Producers (the plug monitor, the control server, signal handlers) emit
events; subscribers register once and are called in registration order.
Any number of subscribers may listen to the same event.
"""

import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from enum import Enum

logger = logging.getLogger(__name__)

EventHandler = Callable[[], Awaitable[None]]


class LifecycleEvent(Enum):
    """Events that can change whether the SSH server should run."""

    TOGGLE = "toggle"
    PLUG_IN = "plug-in"
    PLUG_OUT = "plug-out"
    SUSPEND = "suspend"
    RESUME = "resume"


class EventSource:
    """Registry of lifecycle event handlers.

    Example:
        source = EventSource()

        @source.on_plug_in
        async def handle():
            ...

        await source.emit(LifecycleEvent.PLUG_IN)
    """

    def __init__(self) -> None:
        self._handlers: defaultdict[LifecycleEvent, list[EventHandler]] = (
            defaultdict(list)
        )

    def subscribe(self, event: LifecycleEvent, handler: EventHandler) -> None:
        self._handlers[event].append(handler)

    def unsubscribe(self, event: LifecycleEvent, handler: EventHandler) -> None:
        if handler in self._handlers[event]:
            self._handlers[event].remove(handler)

    def handlers(self, event: LifecycleEvent) -> list[EventHandler]:
        return list(self._handlers[event])

    def on_toggle(self, handler: EventHandler) -> EventHandler:
        """Decorator to register a user toggle handler."""
        self.subscribe(LifecycleEvent.TOGGLE, handler)
        return handler

    def on_plug_in(self, handler: EventHandler) -> EventHandler:
        """Decorator to register a USB plug-in handler."""
        self.subscribe(LifecycleEvent.PLUG_IN, handler)
        return handler

    def on_plug_out(self, handler: EventHandler) -> EventHandler:
        """Decorator to register a USB unplug handler."""
        self.subscribe(LifecycleEvent.PLUG_OUT, handler)
        return handler

    def on_suspend(self, handler: EventHandler) -> EventHandler:
        """Decorator to register a host suspend handler."""
        self.subscribe(LifecycleEvent.SUSPEND, handler)
        return handler

    def on_resume(self, handler: EventHandler) -> EventHandler:
        """Decorator to register a host resume handler."""
        self.subscribe(LifecycleEvent.RESUME, handler)
        return handler

    async def emit(self, event: LifecycleEvent) -> None:
        """Deliver an event to every subscriber, one after another.

        A failing subscriber is logged and does not prevent the others from
        running.
        """
        logger.debug("lifecycle_event", extra={"lifecycle.event": event.value})
        for handler in self.handlers(event):
            try:
                await handler()
            except Exception:
                logger.exception(
                    "lifecycle_handler_error", extra={"lifecycle.event": event.value}
                )
