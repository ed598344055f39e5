"""Tests for the lifecycle coordinator state machine."""

import asyncio
import logging

import pytest

from usbssh.config.models import ServiceConfig
from usbssh.lifecycle.coordinator import (
    START_NOTICE_TIMEOUT,
    STOP_NOTICE_TIMEOUT,
    LifecycleCoordinator,
)
from usbssh.lifecycle.events import EventSource, LifecycleEvent
from usbssh.lifecycle.state import PlugState
from usbssh.service.errors import (
    GadgetEnableError,
    HelperMissingError,
    StartFailedError,
)

ENABLE = ("gadget.enable",)
DISABLE = ("gadget.disable",)
SPAWN = ("process.start", 2222)
TERM = ("process.stop", False)
KILL = ("process.stop", True)


@pytest.fixture
def make_coordinator(fake_supervisor, fake_gadget, notifier, plug_sensor):
    def _make(**overrides) -> LifecycleCoordinator:
        return LifecycleCoordinator(
            ServiceConfig(**overrides),
            fake_supervisor,
            fake_gadget,
            notifier,
            plug_sensor=plug_sensor,
            network_info=lambda iface: f"{iface}: 192.168.2.2",
        )

    return _make


@pytest.fixture
def coordinator(make_coordinator) -> LifecycleCoordinator:
    """Coordinator with default preferences and the cable plugged in."""
    c = make_coordinator()
    c.state.plug_state = PlugState.PLUGGED_IN
    return c


def texts(notifier) -> list[str]:
    return [n.text for n in notifier.drain()]


class TestStart:
    @pytest.mark.asyncio
    async def test_enables_gadget_then_spawns_process(self, coordinator, calls):
        await coordinator.start()

        assert calls == [ENABLE, SPAWN]
        assert coordinator.is_running()

    @pytest.mark.asyncio
    async def test_notifies_port_and_network(self, coordinator, notifier):
        await coordinator.start()

        [notification] = notifier.drain()
        assert notification.text.startswith("USB SSH server started.")
        assert "SSH port: 2222" in notification.text
        assert "rndis0: 192.168.2.2" in notification.text
        assert notification.timeout == START_NOTICE_TIMEOUT
        assert not notification.warning

    @pytest.mark.asyncio
    async def test_second_start_is_noop(self, coordinator, calls, notifier):
        await coordinator.start()
        notifier.drain()

        await coordinator.start()

        assert calls == [ENABLE, SPAWN]
        assert notifier.drain() == []

    @pytest.mark.asyncio
    async def test_silent_start_does_not_notify(self, coordinator, calls, notifier):
        await coordinator.start(silent=True)

        assert calls == [ENABLE, SPAWN]
        assert notifier.drain() == []

    @pytest.mark.asyncio
    async def test_defers_when_unplugged(self, make_coordinator, calls, notifier):
        coordinator = make_coordinator(start_only_when_plugged=True)
        coordinator.state.plug_state = PlugState.UNPLUGGED

        await coordinator.start()
        await coordinator.start()

        assert calls == []
        assert coordinator.state.autostart_pending is True
        assert texts(notifier) == [
            "USB SSH server will start when USB is plugged in.",
            "USB SSH server will start when USB is plugged in.",
        ]

    @pytest.mark.asyncio
    async def test_silent_deferral_does_not_notify(self, make_coordinator, notifier):
        coordinator = make_coordinator(start_only_when_plugged=True)

        await coordinator.start(silent=True)

        assert coordinator.state.autostart_pending is True
        assert notifier.drain() == []

    @pytest.mark.asyncio
    async def test_starts_unplugged_when_not_restricted(
        self, make_coordinator, calls
    ):
        coordinator = make_coordinator(start_only_when_plugged=False)
        coordinator.state.plug_state = PlugState.UNPLUGGED

        await coordinator.start()

        assert calls == [ENABLE, SPAWN]

    @pytest.mark.asyncio
    async def test_start_clears_deferred_flags(self, coordinator):
        coordinator.state.autostart_pending = True
        coordinator.state.resume_after_suspend = True
        coordinator.state.resume_after_unplug = True

        await coordinator.start()

        assert coordinator.state.autostart_pending is False
        assert coordinator.state.resume_after_suspend is False
        assert coordinator.state.resume_after_unplug is False

    @pytest.mark.asyncio
    async def test_gadget_failure_aborts_before_spawn(
        self, coordinator, fake_gadget, calls, notifier
    ):
        fake_gadget.enable_error = HelperMissingError(
            "USB gadget helper not found: /etc/init.d/usb-gadget"
        )

        await coordinator.start()

        assert calls == [ENABLE]
        assert not coordinator.is_running()
        [notification] = notifier.drain()
        assert notification.warning
        assert "helper not found" in notification.text

    @pytest.mark.asyncio
    async def test_silent_gadget_failure_is_only_logged(
        self, coordinator, fake_gadget, notifier, caplog
    ):
        fake_gadget.enable_error = GadgetEnableError("exit 1")

        with caplog.at_level(logging.ERROR):
            await coordinator.start(silent=True)

        assert notifier.drain() == []
        assert "gadget_enable_failed" in caplog.messages

    @pytest.mark.asyncio
    async def test_spawn_failure_leaves_gadget_enabled(
        self, coordinator, fake_supervisor, fake_gadget, calls, notifier
    ):
        fake_supervisor.start_error = StartFailedError("SSH server exited with status 1")

        await coordinator.start()

        assert calls == [ENABLE, SPAWN]
        assert fake_gadget.owned is True
        assert fake_gadget.active is True
        [notification] = notifier.drain()
        assert notification.warning
        assert "status 1" in notification.text


class TestStop:
    @pytest.mark.asyncio
    async def test_stops_process_then_gadget(self, coordinator, calls, notifier):
        await coordinator.start()
        notifier.drain()
        calls.clear()

        await coordinator.stop()

        assert calls == [TERM, DISABLE]
        [notification] = notifier.drain()
        assert notification.text == "USB SSH server stopped."
        assert notification.timeout == STOP_NOTICE_TIMEOUT

    @pytest.mark.asyncio
    async def test_keeps_gadget_when_configured(self, make_coordinator, calls):
        coordinator = make_coordinator(stop_gadget_on_stop=False)
        coordinator.state.plug_state = PlugState.PLUGGED_IN
        await coordinator.start()
        calls.clear()

        await coordinator.stop()

        assert calls == [TERM]

    @pytest.mark.asyncio
    async def test_stop_when_not_running_runs_nothing(self, coordinator, calls):
        await coordinator.stop()

        assert calls == []

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_restarts(self, coordinator):
        coordinator.state.autostart_pending = True
        coordinator.state.resume_after_unplug = True

        await coordinator.stop()

        assert coordinator.state.autostart_pending is False
        assert coordinator.state.resume_after_unplug is False

    @pytest.mark.asyncio
    async def test_escalates_to_force(self, coordinator, fake_supervisor, calls):
        await coordinator.start()
        calls.clear()
        fake_supervisor.graceful_stop_fails = True

        await coordinator.stop()

        assert calls == [TERM, KILL, DISABLE]
        assert not coordinator.is_running()

    @pytest.mark.asyncio
    async def test_failed_kill_leaves_gadget_up(
        self, coordinator, fake_supervisor, fake_gadget, calls, notifier
    ):
        await coordinator.start()
        notifier.drain()
        calls.clear()
        fake_supervisor.graceful_stop_fails = True
        fake_supervisor.forced_stop_fails = True

        await coordinator.stop()

        assert calls == [TERM, KILL]
        assert fake_gadget.owned is True
        assert coordinator.is_running()
        [notification] = notifier.drain()
        assert notification.warning
        assert notification.text.startswith("Failed to stop USB SSH server")


class TestToggle:
    @pytest.mark.asyncio
    async def test_toggle_starts_then_stops(self, coordinator, calls):
        await coordinator.toggle()
        assert coordinator.is_running()

        await coordinator.toggle()
        assert not coordinator.is_running()
        assert calls == [ENABLE, SPAWN, TERM, DISABLE]

    @pytest.mark.asyncio
    async def test_concurrent_toggles_run_one_at_a_time(self, coordinator, calls):
        await asyncio.gather(coordinator.toggle(), coordinator.toggle())

        assert calls == [ENABLE, SPAWN, TERM, DISABLE]
        assert not coordinator.is_running()


class TestSuspendResume:
    @pytest.mark.asyncio
    async def test_suspend_force_stops_process_and_gadget(
        self, coordinator, calls, notifier
    ):
        await coordinator.start()
        notifier.drain()
        calls.clear()

        await coordinator.on_suspend()

        assert calls == [KILL, DISABLE]
        assert coordinator.state.resume_after_suspend is True
        assert notifier.drain() == []

    @pytest.mark.asyncio
    async def test_resume_restarts_when_still_plugged(
        self, coordinator, plug_sensor, calls
    ):
        await coordinator.start()
        await coordinator.on_suspend()
        calls.clear()
        plug_sensor.state = PlugState.PLUGGED_IN

        await coordinator.on_resume()

        assert calls == [ENABLE, SPAWN]
        assert coordinator.state.resume_after_suspend is False

    @pytest.mark.asyncio
    async def test_resume_defers_when_unplugged_during_sleep(
        self, coordinator, plug_sensor, calls
    ):
        await coordinator.start()
        await coordinator.on_suspend()
        calls.clear()
        plug_sensor.state = PlugState.UNPLUGGED

        await coordinator.on_resume()

        assert calls == []
        assert coordinator.state.autostart_pending is True
        assert coordinator.state.resume_after_suspend is False

    @pytest.mark.asyncio
    async def test_resume_without_suspend_is_noop(self, coordinator, calls):
        await coordinator.on_resume()

        assert calls == []

    @pytest.mark.asyncio
    async def test_suspend_ignored_when_disabled(self, make_coordinator, calls):
        coordinator = make_coordinator(pause_on_suspend=False)
        coordinator.state.plug_state = PlugState.PLUGGED_IN
        await coordinator.start()
        calls.clear()

        await coordinator.on_suspend()

        assert calls == []
        assert coordinator.is_running()

    @pytest.mark.asyncio
    async def test_suspend_cancels_pending_start(self, make_coordinator):
        coordinator = make_coordinator()
        await coordinator.start()
        assert coordinator.state.autostart_pending is True

        await coordinator.on_suspend()

        assert coordinator.state.autostart_pending is False
        assert coordinator.state.resume_after_suspend is False


class TestUsbPlug:
    @pytest.mark.asyncio
    async def test_plug_in_resolves_pending_start_once(
        self, make_coordinator, calls
    ):
        coordinator = make_coordinator()
        await coordinator.start()
        await coordinator.start()

        await coordinator.on_usb_plug_in()
        await coordinator.on_usb_plug_in()

        assert calls == [ENABLE, SPAWN]
        assert coordinator.state.autostart_pending is False
        assert coordinator.state.plug_state is PlugState.PLUGGED_IN

    @pytest.mark.asyncio
    async def test_unplug_stops_and_replug_restarts(self, coordinator, calls):
        await coordinator.start()
        calls.clear()

        await coordinator.on_usb_plug_out()

        assert calls == [KILL, DISABLE]
        assert coordinator.state.resume_after_unplug is True
        assert coordinator.state.plug_state is PlugState.UNPLUGGED

        calls.clear()
        await coordinator.on_usb_plug_in()

        assert calls == [ENABLE, SPAWN]
        assert coordinator.state.resume_after_unplug is False

    @pytest.mark.asyncio
    async def test_unplug_keeps_server_when_configured(
        self, make_coordinator, fake_gadget, calls
    ):
        coordinator = make_coordinator(stop_on_unplug=False)
        coordinator.state.plug_state = PlugState.PLUGGED_IN
        await coordinator.start()
        calls.clear()

        await coordinator.on_usb_plug_out()

        assert calls == [DISABLE]
        assert coordinator.is_running()
        assert fake_gadget.active is False

    @pytest.mark.asyncio
    async def test_plug_in_reenables_dropped_gadget(
        self, make_coordinator, calls
    ):
        coordinator = make_coordinator(stop_on_unplug=False)
        coordinator.state.plug_state = PlugState.PLUGGED_IN
        await coordinator.start()
        await coordinator.on_usb_plug_out()
        calls.clear()

        await coordinator.on_usb_plug_in()

        assert calls == [ENABLE]

    @pytest.mark.asyncio
    async def test_reenable_failure_is_only_logged(
        self, make_coordinator, fake_gadget, notifier, caplog
    ):
        coordinator = make_coordinator(stop_on_unplug=False)
        coordinator.state.plug_state = PlugState.PLUGGED_IN
        await coordinator.start()
        await coordinator.on_usb_plug_out()
        notifier.drain()
        fake_gadget.enable_error = GadgetEnableError("exit 1")

        with caplog.at_level(logging.WARNING):
            await coordinator.on_usb_plug_in()

        assert notifier.drain() == []
        assert "gadget_reenable_failed" in caplog.messages

    @pytest.mark.asyncio
    async def test_deferred_start_then_plug_in(self, make_coordinator, calls):
        coordinator = make_coordinator(
            port=2222, start_only_when_plugged=True, stop_on_unplug=True
        )
        assert coordinator.state.plug_state is PlugState.UNKNOWN

        await coordinator.start()

        assert coordinator.state.autostart_pending is True
        assert calls == []

        await coordinator.on_usb_plug_in()

        assert calls == [ENABLE, SPAWN]


class TestShutdown:
    @pytest.mark.asyncio
    async def test_force_stops_everything(self, make_coordinator, calls):
        coordinator = make_coordinator(stop_gadget_on_stop=False)
        coordinator.state.plug_state = PlugState.PLUGGED_IN
        await coordinator.start()
        calls.clear()

        await coordinator.on_shutdown()

        assert calls == [KILL, DISABLE]
        assert not coordinator.is_running()

    @pytest.mark.asyncio
    async def test_releases_gadget_even_if_kill_fails(
        self, coordinator, fake_supervisor, fake_gadget, calls, notifier, caplog
    ):
        await coordinator.start()
        notifier.drain()
        calls.clear()
        fake_supervisor.forced_stop_fails = True

        with caplog.at_level(logging.ERROR):
            await coordinator.on_shutdown()

        assert calls == [KILL, DISABLE]
        assert fake_gadget.owned is False
        assert notifier.drain() == []
        assert "background_stop_failed" in caplog.messages

    @pytest.mark.asyncio
    async def test_noop_when_idle(self, coordinator, calls):
        await coordinator.on_shutdown()

        assert calls == []


class TestInitialize:
    @pytest.mark.asyncio
    async def test_autostart_is_silent(
        self, make_coordinator, plug_sensor, calls, notifier
    ):
        plug_sensor.state = PlugState.PLUGGED_IN
        coordinator = make_coordinator(autostart=True)

        await coordinator.initialize()

        assert calls == [ENABLE, SPAWN]
        assert notifier.drain() == []

    @pytest.mark.asyncio
    async def test_autostart_waits_for_usb(self, make_coordinator, plug_sensor, calls):
        plug_sensor.state = PlugState.UNPLUGGED
        coordinator = make_coordinator(autostart=True)

        await coordinator.initialize()

        assert calls == []
        assert coordinator.state.autostart_pending is True
        assert coordinator.state.plug_state is PlugState.UNPLUGGED

    @pytest.mark.asyncio
    async def test_no_autostart(self, make_coordinator, calls):
        coordinator = make_coordinator()

        await coordinator.initialize()

        assert calls == []
        assert coordinator.state.autostart_pending is False

    @pytest.mark.asyncio
    async def test_resets_runtime_state(self, make_coordinator, fake_gadget):
        coordinator = make_coordinator()
        coordinator.state.resume_after_suspend = True
        fake_gadget.owned = True

        await coordinator.initialize()

        assert coordinator.state.resume_after_suspend is False
        assert fake_gadget.owned is False


class TestEventWiring:
    @pytest.mark.asyncio
    async def test_attach_routes_events(self, make_coordinator, calls):
        source = EventSource()
        coordinator = make_coordinator()
        coordinator.attach(source)

        await source.emit(LifecycleEvent.TOGGLE)
        assert coordinator.state.autostart_pending is True

        await source.emit(LifecycleEvent.PLUG_IN)
        assert calls == [ENABLE, SPAWN]

        await source.emit(LifecycleEvent.SUSPEND)
        assert coordinator.state.resume_after_suspend is True

        await source.emit(LifecycleEvent.RESUME)
        await source.emit(LifecycleEvent.PLUG_OUT)
        assert coordinator.state.resume_after_unplug is True


class TestSnapshotAndReload:
    @pytest.mark.asyncio
    async def test_snapshot_reflects_state(self, coordinator):
        await coordinator.start()

        snapshot = coordinator.snapshot().to_dict()

        assert snapshot["running"] is True
        assert snapshot["port"] == 2222
        assert snapshot["plug_state"] == "plugged-in"
        assert snapshot["gadget_owned"] is True

    @pytest.mark.asyncio
    async def test_reload_applies_new_port(self, coordinator, calls):
        await coordinator.reload_config(ServiceConfig(port=2022))

        await coordinator.start()

        assert calls == [ENABLE, ("process.start", 2022)]
