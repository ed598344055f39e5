"""Platform capability detection.

Capabilities are decided once, when the controllers are built, instead of
re-checking the device kind on every call.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from usbssh.config.models import CapabilityOverride, PlatformConfig

logger = logging.getLogger(__name__)

# Files that only exist on Kobo firmware.
KOBO_MARKERS = (
    Path("/bin/kobo_config.sh"),
    Path("/mnt/onboard/.kobo"),
)


@dataclass(frozen=True)
class PlatformCapabilities:
    """What the host platform supports.

    Attributes:
        supports_usb_gadget: The host can expose a USB ethernet gadget that
            usbssh has to bring up and tear down itself.
        needs_devpts: /dev/pts may be missing and has to be mounted before an
            SSH server can hand out pseudoterminals.
    """

    supports_usb_gadget: bool
    needs_devpts: bool


def is_kobo() -> bool:
    return any(marker.exists() for marker in KOBO_MARKERS)


def _resolve(override: CapabilityOverride, detected: bool) -> bool:
    if override == "on":
        return True
    if override == "off":
        return False
    return detected


def detect_capabilities(platform: PlatformConfig) -> PlatformCapabilities:
    """Detect host capabilities, honoring config overrides.

    Args:
        platform: Platform configuration with optional overrides.

    Returns:
        The capabilities to hand to the controllers.
    """
    kobo = is_kobo()
    capabilities = PlatformCapabilities(
        supports_usb_gadget=_resolve(platform.usb_gadget, kobo),
        needs_devpts=_resolve(platform.devpts, kobo),
    )
    logger.debug(
        "platform_capabilities_detected",
        extra={
            "platform.kobo": kobo,
            "platform.usb_gadget": capabilities.supports_usb_gadget,
            "platform.devpts": capabilities.needs_devpts,
        },
    )
    return capabilities
