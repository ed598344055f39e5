"""USB ethernet gadget control.

The gadget is a shared resource: something else (the firmware, another
tool, the user) may have brought the interface up before us. The controller
remembers whether it enabled the interface itself and only ever tears down
an interface it owns.
"""

import asyncio
import logging
from pathlib import Path

from usbssh.config.models import PlatformConfig
from usbssh.service.base import GadgetResult
from usbssh.service.commands import run_command
from usbssh.service.errors import (
    GadgetDisableError,
    GadgetEnableError,
    HelperMissingError,
    InterfaceTimeoutError,
)
from usbssh.service.platform import PlatformCapabilities

logger = logging.getLogger(__name__)

GADGET_FUNCTION = "ethernet"
INTERFACE_POLLS = 20


class GadgetController:
    """Enables and disables the USB ethernet gadget via its helper script."""

    def __init__(
        self,
        platform: PlatformConfig,
        capabilities: PlatformCapabilities,
        *,
        interface_polls: int = INTERFACE_POLLS,
    ):
        self._platform = platform
        self._capabilities = capabilities
        self._interface_polls = interface_polls
        self.owned = False
        self.active = False

    @property
    def helper_path(self) -> Path:
        return self._platform.gadget_helper

    @property
    def interface_name(self) -> str:
        return self._platform.interface

    @property
    def interface_path(self) -> Path:
        return self._platform.net_root / self._platform.interface

    @property
    def supported(self) -> bool:
        return self._capabilities.supports_usb_gadget

    def interface_present(self) -> bool:
        return self.interface_path.exists()

    def reset(self) -> None:
        """Forget ownership, e.g. when the coordinator is re-initialized."""
        self.owned = False
        self.active = False

    async def enable(self) -> GadgetResult:
        """Bring the gadget interface up.

        Returns:
            ENABLED when this call created the interface, ALREADY_PRESENT when
            it already existed (ownership is unchanged), UNSUPPORTED when the
            platform has no gadget.

        Raises:
            HelperMissingError: If the helper script does not exist.
            GadgetEnableError: If the helper exits non-zero.
            InterfaceTimeoutError: If the interface never appears.
        """
        if not self.supported:
            return GadgetResult.UNSUPPORTED

        if self.interface_present():
            # Ownership is only ever gained by creating the interface; an
            # interface we created earlier stays ours.
            logger.debug(
                "gadget_interface_already_present",
                extra={
                    "net.interface": self._platform.interface,
                    "gadget.owned": self.owned,
                },
            )
            self.active = True
            return GadgetResult.ALREADY_PRESENT

        if not self.helper_path.exists():
            raise HelperMissingError(f"USB gadget helper not found: {self.helper_path}")

        returncode, _, stderr = await self._run_helper("start")
        if returncode != 0:
            raise GadgetEnableError(
                f"Failed to start USB ethernet gadget (exit {returncode}): {stderr.strip()}"
            )

        for _ in range(self._interface_polls):
            if self.interface_present():
                self.owned = True
                self.active = True
                logger.info(
                    "gadget_enabled", extra={"net.interface": self._platform.interface}
                )
                return GadgetResult.ENABLED
            await asyncio.sleep(self._platform.poll_interval)

        raise InterfaceTimeoutError(
            f"USB ethernet interface {self._platform.interface} did not come up"
        )

    async def disable(self) -> GadgetResult:
        """Tear the gadget interface down if this controller brought it up.

        Returns:
            DISABLED, or the reason nothing was done (UNSUPPORTED, NOT_OWNER,
            HELPER_MISSING).

        Raises:
            GadgetDisableError: If the helper exits non-zero.
        """
        if not self.supported:
            return GadgetResult.UNSUPPORTED

        if not self.owned:
            logger.debug("gadget_disable_skipped_not_owner")
            return GadgetResult.NOT_OWNER

        if not self.helper_path.exists():
            return GadgetResult.HELPER_MISSING

        returncode, _, stderr = await self._run_helper("stop")
        if returncode != 0:
            raise GadgetDisableError(
                f"Failed to stop USB ethernet gadget (exit {returncode}): {stderr.strip()}"
            )

        self.owned = False
        self.active = False
        logger.info("gadget_disabled", extra={"net.interface": self._platform.interface})
        return GadgetResult.DISABLED

    async def _run_helper(self, action: str) -> tuple[int, str, str]:
        try:
            return await run_command(str(self.helper_path), action, GADGET_FUNCTION)
        except OSError as e:
            # Present but not executable
            return 126, "", str(e)
