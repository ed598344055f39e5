"""SSH server and USB gadget management.

Provides the two controllers the lifecycle coordinator drives:
- ProcessSupervisor: launches dropbear, checks its pid file, stops it
- GadgetController: brings the USB ethernet gadget up and down

Example:
    from usbssh.service import GadgetController, ProcessSupervisor

    gadget = GadgetController(config.platform, capabilities)
    supervisor = ProcessSupervisor(config.platform, capabilities)
    await gadget.enable()
    await supervisor.start(service_config)
"""

from usbssh.service.base import (
    GadgetResult,
    ServiceState,
    ServiceStatus,
    StartResult,
    StopResult,
)
from usbssh.service.errors import (
    GadgetDisableError,
    GadgetEnableError,
    HelperMissingError,
    InterfaceTimeoutError,
    ServiceError,
    StartFailedError,
    StopTimeoutError,
)
from usbssh.service.gadget import GadgetController
from usbssh.service.platform import PlatformCapabilities, detect_capabilities
from usbssh.service.supervisor import ProcessSupervisor

__all__ = [
    "GadgetController",
    "GadgetDisableError",
    "GadgetEnableError",
    "GadgetResult",
    "HelperMissingError",
    "InterfaceTimeoutError",
    "PlatformCapabilities",
    "ProcessSupervisor",
    "ServiceError",
    "ServiceState",
    "ServiceStatus",
    "StartFailedError",
    "StartResult",
    "StopResult",
    "StopTimeoutError",
    "detect_capabilities",
]
