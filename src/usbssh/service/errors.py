"""Errors raised by the process supervisor and gadget controller.

Each error carries a stable ``code`` so callers (the coordinator, the control
socket) can report the specific cause without matching on message text.
Idempotent no-ops such as "already running" are results, not errors.
"""


class ServiceError(Exception):
    """Base class for service and gadget failures."""

    code = "service-error"


class HelperMissingError(ServiceError):
    """The USB gadget helper script does not exist."""

    code = "helper-missing"


class GadgetEnableError(ServiceError):
    """The gadget helper exited non-zero on start."""

    code = "enable-failed"


class GadgetDisableError(ServiceError):
    """The gadget helper exited non-zero on stop."""

    code = "disable-failed"


class InterfaceTimeoutError(ServiceError):
    """The helper succeeded but the network interface never appeared."""

    code = "interface-timeout"


class StartFailedError(ServiceError):
    """The SSH server launch command failed."""

    code = "start-failed"


class StopTimeoutError(ServiceError):
    """The SSH server process could not be confirmed dead."""

    code = "stop-timeout"
