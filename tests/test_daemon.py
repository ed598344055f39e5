"""Tests for daemon wiring."""

import asyncio

import pytest

from usbssh.config.models import AppConfig, ControlConfig, MonitorConfig
from usbssh.config.settings import SettingsStore
from usbssh.control.client import control_call
from usbssh.daemon import Daemon


@pytest.fixture
def app_config(platform_config, tmp_path) -> AppConfig:
    platform = platform_config.model_copy(update={"usb_gadget": "off"})
    return AppConfig(
        platform=platform,
        control=ControlConfig(socket_path=tmp_path / "run" / "ctl.sock"),
    )


@pytest.fixture
def settings(tmp_path) -> SettingsStore:
    return SettingsStore(tmp_path / "settings.toml")


class TestDaemon:
    def test_no_monitor_without_plug_path(self, app_config, settings):
        daemon = Daemon(app_config, settings)

        assert daemon.monitor is None
        assert daemon.gadget.supported is False

    def test_monitor_is_plug_sensor(self, app_config, settings, tmp_path):
        config = app_config.model_copy(
            update={"monitor": MonitorConfig(plug_state_path=tmp_path / "online")}
        )

        daemon = Daemon(config, settings)

        assert daemon.monitor is not None
        assert daemon.monitor.state_path == tmp_path / "online"

    def test_uses_stored_preferences(self, app_config, settings):
        settings.save_setting("port", 2022)

        daemon = Daemon(app_config, settings)

        assert daemon.coordinator.config.port == 2022

    @pytest.mark.asyncio
    async def test_serves_control_socket(self, app_config, settings, tmp_path):
        plug_file = tmp_path / "online"
        plug_file.write_text("1\n")
        config = app_config.model_copy(
            update={
                "monitor": MonitorConfig(plug_state_path=plug_file, poll_interval=0.01)
            }
        )
        daemon = Daemon(config, settings)

        await daemon.start()
        try:
            result = await asyncio.to_thread(
                control_call,
                "service.status",
                None,
                config.control.socket_path,
                5.0,
            )
        finally:
            await daemon.shutdown()

        assert result["status"]["running"] is False
        assert result["status"]["plug_state"] == "plugged-in"
        assert not config.control.socket_path.exists()

    @pytest.mark.asyncio
    async def test_run_stops_on_request(self, app_config, settings):
        daemon = Daemon(app_config, settings)

        task = asyncio.create_task(daemon.run())
        for _ in range(100):
            if daemon.server.is_running:
                break
            await asyncio.sleep(0.01)
        daemon.request_stop()
        await asyncio.wait_for(task, timeout=5)

        assert not daemon.server.is_running
