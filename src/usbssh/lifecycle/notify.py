"""User-facing notifications.

The coordinator reports outcomes of user-initiated actions through a
``Notifier``. How they reach the user (a toast, a console line, a control
socket reply) is up to the implementation.
"""

import logging
from collections import deque
from dataclasses import asdict, dataclass
from typing import Any, Protocol

logger = logging.getLogger(__name__)


@dataclass
class Notification:
    """A message for the user."""

    text: str
    warning: bool = False
    timeout: float | None = None  # Seconds the message should stay visible

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class Notifier(Protocol):
    """Anything that can show a notification to the user."""

    def notify(self, notification: Notification) -> None: ...


class LogNotifier:
    """Notifier that only writes to the log."""

    def notify(self, notification: Notification) -> None:
        level = logging.WARNING if notification.warning else logging.INFO
        logger.log(level, f"notification: {notification.text}")


class BufferedNotifier(LogNotifier):
    """Notifier that logs and keeps recent notifications for later delivery.

    The control server drains the buffer after each request so the client
    that triggered an action sees what happened.
    """

    def __init__(self, maxlen: int = 50):
        self._pending: deque[Notification] = deque(maxlen=maxlen)

    def notify(self, notification: Notification) -> None:
        super().notify(notification)
        self._pending.append(notification)

    def drain(self) -> list[Notification]:
        drained = list(self._pending)
        self._pending.clear()
        return drained
