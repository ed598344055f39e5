"""Result and status types shared by the service controllers."""

from dataclasses import dataclass
from enum import Enum


class ServiceState(Enum):
    """SSH server running state."""

    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class ServiceStatus:
    """SSH server status information."""

    state: ServiceState
    pid: int | None = None
    message: str | None = None


class StartResult(Enum):
    """Outcome of a successful ``ProcessSupervisor.start``."""

    STARTED = "started"
    ALREADY_RUNNING = "already-running"


class StopResult(Enum):
    """Outcome of a successful ``ProcessSupervisor.stop``."""

    STOPPED = "stopped"
    NOT_RUNNING = "not-running"


class GadgetResult(Enum):
    """Outcome of a successful gadget enable/disable."""

    ENABLED = "enabled"
    DISABLED = "disabled"
    ALREADY_PRESENT = "already-present"
    NOT_OWNER = "not-owner"
    HELPER_MISSING = "helper-missing"
    UNSUPPORTED = "unsupported"
