"""Tests for platform capability detection and network info."""

import socket
from types import SimpleNamespace

import pytest

from usbssh.config.models import PlatformConfig
from usbssh.service import network
from usbssh.service.platform import detect_capabilities


class TestDetectCapabilities:
    @pytest.mark.parametrize("kobo", [True, False])
    def test_auto_follows_detection(self, monkeypatch, kobo):
        monkeypatch.setattr("usbssh.service.platform.is_kobo", lambda: kobo)

        capabilities = detect_capabilities(PlatformConfig())

        assert capabilities.supports_usb_gadget is kobo
        assert capabilities.needs_devpts is kobo

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setattr("usbssh.service.platform.is_kobo", lambda: False)

        capabilities = detect_capabilities(
            PlatformConfig(usb_gadget="on", devpts="off")
        )

        assert capabilities.supports_usb_gadget is True
        assert capabilities.needs_devpts is False


def _addr(address, family=socket.AF_INET):
    return SimpleNamespace(family=family, address=address)


class TestDescribeNetwork:
    def test_prefers_gadget_interface(self, monkeypatch):
        monkeypatch.setattr(
            "usbssh.service.network.psutil.net_if_addrs",
            lambda: {
                "lo": [_addr("127.0.0.1")],
                "rndis0": [_addr("192.168.2.2"), _addr("fe80::1", socket.AF_INET6)],
                "wlan0": [_addr("10.0.0.5")],
            },
        )

        assert network.describe_network("rndis0") == "rndis0: 192.168.2.2"

    def test_falls_back_to_all_interfaces(self, monkeypatch):
        monkeypatch.setattr(
            "usbssh.service.network.psutil.net_if_addrs",
            lambda: {"lo": [_addr("127.0.0.1")], "wlan0": [_addr("10.0.0.5")]},
        )

        assert network.describe_network("rndis0") == "wlan0: 10.0.0.5"

    def test_no_addresses(self, monkeypatch):
        monkeypatch.setattr(
            "usbssh.service.network.psutil.net_if_addrs",
            lambda: {"lo": [_addr("127.0.0.1")]},
        )

        assert network.describe_network("rndis0") == network.NO_NETWORK_INFO
