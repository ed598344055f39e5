"""Shared test fixtures and fakes."""

from pathlib import Path

import pytest

from usbssh.config.models import PlatformConfig, ServiceConfig
from usbssh.config.paths import ENV_VAR, get_usbssh_home
from usbssh.lifecycle.notify import BufferedNotifier
from usbssh.lifecycle.state import PlugState
from usbssh.service.base import GadgetResult, StartResult, StopResult
from usbssh.service.errors import ServiceError, StopTimeoutError
from usbssh.service.platform import PlatformCapabilities

# =============================================================================
# Environment
# =============================================================================


@pytest.fixture(autouse=True)
def usbssh_home(monkeypatch, tmp_path: Path) -> Path:
    """Point USBSSH_HOME at a temp dir so no test touches the real home."""
    home = tmp_path / "usbssh-home"
    monkeypatch.setenv(ENV_VAR, str(home))
    get_usbssh_home.cache_clear()
    yield home
    get_usbssh_home.cache_clear()


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def platform_config(tmp_path: Path) -> PlatformConfig:
    """Platform config rooted in tmp_path with no polling delay."""
    net_root = tmp_path / "net"
    net_root.mkdir()
    return PlatformConfig(
        data_dir=tmp_path / "data",
        dropbear_path=Path("dropbear"),
        pid_path=tmp_path / "dropbear.pid",
        gadget_helper=tmp_path / "usb-gadget",
        interface="rndis0",
        net_root=net_root,
        usb_gadget="on",
        devpts="off",
        poll_interval=0,
    )


@pytest.fixture
def capabilities() -> PlatformCapabilities:
    return PlatformCapabilities(supports_usb_gadget=True, needs_devpts=False)


@pytest.fixture
def service_config() -> ServiceConfig:
    return ServiceConfig(port=2222)


# =============================================================================
# Fakes
# =============================================================================


class FakeSupervisor:
    """In-memory stand-in for ProcessSupervisor that records calls."""

    def __init__(self, calls: list, pid_path: Path):
        self.calls = calls
        self.pid_path = pid_path
        self.running = False
        self.start_error: ServiceError | None = None
        self.graceful_stop_fails = False
        self.forced_stop_fails = False

    def is_running(self) -> bool:
        return self.running

    async def start(self, config: ServiceConfig) -> StartResult:
        if self.running:
            return StartResult.ALREADY_RUNNING
        self.calls.append(("process.start", config.port))
        if self.start_error is not None:
            raise self.start_error
        self.running = True
        return StartResult.STARTED

    async def stop(self, force: bool = False) -> StopResult:
        if not self.running:
            return StopResult.NOT_RUNNING
        self.calls.append(("process.stop", force))
        if (force and self.forced_stop_fails) or (
            not force and self.graceful_stop_fails
        ):
            raise StopTimeoutError("dropbear process 4242 did not exit")
        self.running = False
        return StopResult.STOPPED


class FakeGadget:
    """In-memory stand-in for GadgetController that records calls."""

    interface_name = "rndis0"

    def __init__(self, calls: list):
        self.calls = calls
        self.supported = True
        self.owned = False
        self.active = False
        self.enable_error: ServiceError | None = None
        self.disable_error: ServiceError | None = None

    def reset(self) -> None:
        self.owned = False
        self.active = False

    async def enable(self) -> GadgetResult:
        self.calls.append(("gadget.enable",))
        if self.enable_error is not None:
            raise self.enable_error
        if self.active:
            return GadgetResult.ALREADY_PRESENT
        self.owned = True
        self.active = True
        return GadgetResult.ENABLED

    async def disable(self) -> GadgetResult:
        if not self.owned:
            return GadgetResult.NOT_OWNER
        self.calls.append(("gadget.disable",))
        if self.disable_error is not None:
            raise self.disable_error
        self.owned = False
        self.active = False
        return GadgetResult.DISABLED


class FakePlugSensor:
    def __init__(self, state: PlugState = PlugState.UNKNOWN):
        self.state = state

    def read_plug_state(self) -> PlugState:
        return self.state


@pytest.fixture
def calls() -> list:
    """Ordered log of gadget and process commands issued by the fakes."""
    return []


@pytest.fixture
def fake_supervisor(calls, tmp_path: Path) -> FakeSupervisor:
    return FakeSupervisor(calls, tmp_path / "fake.pid")


@pytest.fixture
def fake_gadget(calls) -> FakeGadget:
    return FakeGadget(calls)


@pytest.fixture
def plug_sensor() -> FakePlugSensor:
    return FakePlugSensor()


@pytest.fixture
def notifier() -> BufferedNotifier:
    return BufferedNotifier()
